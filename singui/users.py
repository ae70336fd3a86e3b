"""Panel accounts and API tokens."""

import json
import logging
import sqlite3
import time
from dataclasses import dataclass

from singui.common import new_error, random_string

log = logging.getLogger(__name__)


@dataclass
class User:
    """A panel account."""

    id: int = 0
    username: str = ""
    password: str = ""
    last_logins: str = ""


@dataclass
class Token:
    """An API token belonging to a user."""

    id: int = 0
    desc: str = ""
    token: str = ""
    expiry: int = 0
    user_id: int = 0
    username: str = ""


class UserStore:
    """Accounts and tokens kept in SQLite tables."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS users ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, username TEXT, "
                "password TEXT, last_logins TEXT DEFAULT '')"
            )
            self._conn.execute(
                'CREATE TABLE IF NOT EXISTS tokens ('
                'id INTEGER PRIMARY KEY AUTOINCREMENT, "desc" TEXT, token TEXT, '
                "expiry INTEGER DEFAULT 0, user_id INTEGER)"
            )

    @staticmethod
    def _user(row) -> User:
        return User(id=row[0], username=row[1] or "", password=row[2] or "",
                    last_logins=row[3] or "")

    def first_user(self) -> User:
        """Return the first account; LookupError when there is none."""
        row = self._conn.execute(
            "SELECT id, username, password, last_logins FROM users ORDER BY id LIMIT 1"
        ).fetchone()
        if row is None:
            raise LookupError("record not found")
        return self._user(row)

    def update_first_user(self, username: str, password: str) -> None:
        """Set the credentials of the first account, creating it if needed."""
        if not username:
            raise new_error("username can not be empty")
        if not password:
            raise new_error("password can not be empty")
        with self._conn:
            row = self._conn.execute("SELECT id FROM users ORDER BY id LIMIT 1").fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO users (username, password) VALUES (?, ?)", (username, password)
                )
            else:
                self._conn.execute(
                    "UPDATE users SET username = ?, password = ? WHERE id = ?",
                    (username, password, row[0]),
                )

    def check_user(self, username: str, password: str, remote_ip: str) -> User | None:
        """Return the matching account and record the login, or None."""
        try:
            row = self._conn.execute(
                "SELECT id, username, password, last_logins FROM users "
                "WHERE username = ? AND password = ? ORDER BY id LIMIT 1",
                (username, password),
            ).fetchone()
        except sqlite3.Error as exc:
            log.warning("check user err: %s IP: %s", exc, remote_ip)
            return None
        if row is None:
            return None
        user = self._user(row)
        stamp = time.strftime("%Y-%m-%d %H:%M:%S") + " " + remote_ip
        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE users SET last_logins = ? WHERE username = ?", (stamp, username)
                )
        except sqlite3.Error as exc:
            log.warning("unable to log login data: %s", exc)
        return user

    def login(self, username: str, password: str, remote_ip: str) -> str:
        """Return the username on success; PanelError otherwise."""
        user = self.check_user(username, password, remote_ip)
        if user is None:
            raise new_error("wrong user or password! IP: ", remote_ip)
        return user.username

    def users(self) -> list[User]:
        """List accounts without their passwords."""
        rows = self._conn.execute(
            "SELECT id, username, last_logins FROM users ORDER BY id"
        ).fetchall()
        return [User(id=r[0], username=r[1] or "", last_logins=r[2] or "") for r in rows]

    def change_pass(self, user_id, old_pass: str, new_user: str, new_pass: str) -> None:
        """Replace credentials of an account whose current password matches."""
        with self._conn:
            row = self._conn.execute(
                "SELECT id FROM users WHERE id = ? AND password = ? LIMIT 1",
                (user_id, old_pass),
            ).fetchone()
            if row is None:
                raise LookupError("record not found")
            self._conn.execute(
                "UPDATE users SET username = ?, password = ? WHERE id = ?",
                (new_user, new_pass, row[0]),
            )

    def load_tokens(self) -> str:
        """Return the unexpired tokens with their owners as indented JSON."""
        rows = self._conn.execute(
            "SELECT t.token, t.expiry, u.username FROM tokens t "
            "LEFT JOIN users u ON u.id = t.user_id "
            "WHERE t.expiry = 0 OR t.expiry > ? ORDER BY t.id",
            (int(time.time()),),
        ).fetchall()
        result = [
            {"token": token, "expiry": expiry or 0, "username": username or ""}
            for token, expiry, username in rows
        ]
        return json.dumps(result or None, indent=2, sort_keys=True)

    def user_tokens(self, username: str) -> list[Token]:
        """List a user's tokens with the token value masked."""
        rows = self._conn.execute(
            'SELECT id, "desc", \'****\', expiry, user_id FROM tokens '
            "WHERE user_id = (SELECT id FROM users WHERE username = ?) ORDER BY id",
            (username,),
        ).fetchall()
        return [
            Token(id=r[0], desc=r[1] or "", token=r[2], expiry=r[3] or 0, user_id=r[4] or 0)
            for r in rows
        ]

    def add_token(self, username: str, expiry: int, desc: str) -> str:
        """Create a token valid for ``expiry`` days (0 = forever) and return it."""
        row = self._conn.execute(
            "SELECT id FROM users WHERE username = ? ORDER BY id LIMIT 1", (username,)
        ).fetchone()
        user_id = row[0] if row else 0
        if expiry > 0:
            expiry = expiry * 86400 + int(time.time())
        token = random_string(32)
        with self._conn:
            self._conn.execute(
                'INSERT INTO tokens (token, "desc", expiry, user_id) VALUES (?, ?, ?, ?)',
                (token, desc, expiry, user_id),
            )
        return token

    def delete_token(self, token_id) -> None:
        """Remove a token by id."""
        with self._conn:
            self._conn.execute("DELETE FROM tokens WHERE id = ?", (token_id,))