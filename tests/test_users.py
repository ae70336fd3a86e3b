import json
import sqlite3
import time

import pytest

from singui.common import PanelError
from singui.users import UserStore


@pytest.fixture
def store():
    conn = sqlite3.connect(":memory:")
    yield UserStore(conn)
    conn.close()


@pytest.fixture
def admin(store):
    password = "password"
    store.update_first_user("admin", password)
    return store


def test_first_user_missing(store):
    with pytest.raises(LookupError):
        store.first_user()


def test_update_first_user_requires_values(store):
    password = "password"
    with pytest.raises(PanelError):
        store.update_first_user("", password)
    empty = ""
    with pytest.raises(PanelError):
        store.update_first_user("admin", empty)


def test_update_first_user_updates_same_row(admin):
    first_id = admin.first_user().id
    password = "secret"
    admin.update_first_user("root", password)
    user = admin.first_user()
    assert user.id == first_id
    assert user.username == "root"
    assert user.password == "secret"
    assert len(admin.users()) == 1


def test_login(admin):
    password = "password"
    assert admin.login("admin", password, "10.0.0.1") == "admin"
    wrong = "secret"
    with pytest.raises(PanelError):
        admin.login("admin", wrong, "10.0.0.1")
    assert admin.check_user("nobody", password, "10.0.0.1") is None


def test_login_records_last_login(admin):
    password = "password"
    admin.login("admin", password, "10.0.0.1")
    listed = admin.users()[0]
    assert listed.last_logins.endswith(" 10.0.0.1")
    assert listed.password == ""


def test_change_pass(admin):
    user_id = admin.first_user().id
    new_pass = "secret"
    with pytest.raises(LookupError):
        admin.change_pass(user_id, new_pass, "admin", new_pass)
    password = "password"
    admin.change_pass(user_id, password, "boss", new_pass)
    assert admin.login("boss", new_pass, "127.0.0.1") == "boss"


def test_tokens_round_trip(admin):
    issued = admin.add_token("admin", 0, "ci")
    assert len(issued) == 32
    loaded = json.loads(admin.load_tokens())
    assert loaded == [{"token": issued, "expiry": 0, "username": "admin"}]
    listed = admin.user_tokens("admin")
    assert [(t.desc, t.token) for t in listed] == [("ci", "****")]
    admin.delete_token(listed[0].id)
    assert admin.user_tokens("admin") == []
    assert admin.load_tokens() == "null"


def test_token_expiry_in_future(admin):
    before = int(time.time())
    admin.add_token("admin", 2, "short")
    expiry = admin.user_tokens("admin")[0].expiry
    assert expiry >= before + 2 * 86400
    assert json.loads(admin.load_tokens())[0]["expiry"] == expiry


def test_expired_tokens_not_loaded(store):
    conn = store._conn
    password = "password"
    store.update_first_user("admin", password)
    conn.execute("INSERT INTO tokens (token, expiry, user_id) VALUES ('token', 1, 1)")
    conn.commit()
    assert store.load_tokens() == "null"
    assert len(store.user_tokens("admin")) == 1