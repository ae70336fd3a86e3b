"""Persistent panel settings with defaults."""

import json
import logging
import os
import sqlite3
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from singui.common import new_error, random_string

log = logging.getLogger(__name__)

DEFAULT_CONFIG = """{
  "log": {
    "level": "info"
  },
  "dns": {},
  "route": {
    "rules": [
      {
        "protocol": [
          "dns"
        ],
        "action": "hijack-dns"
      }
    ]
  },
  "experimental": {}
}"""


def _app_version() -> str:
    try:
        return version("singui")
    except PackageNotFoundError:
        return "0.0.0"


DEFAULTS: dict[str, str] = {
    "webListen": "",
    "webDomain": "",
    "webPort": "2095",
    "secret": random_string(32),
    "webCertFile": "",
    "webKeyFile": "",
    "webPath": "/app/",
    "webURI": "",
    "sessionMaxAge": "0",
    "trafficAge": "30",
    "timeLocation": "Asia/Tehran",
    "subListen": "",
    "subPort": "2096",
    "subPath": "/sub/",
    "subDomain": "",
    "subCertFile": "",
    "subKeyFile": "",
    "subUpdates": "12",
    "subEncode": "true",
    "subShowInfo": "false",
    "subURI": "",
    "subJsonExt": "",
    "config": DEFAULT_CONFIG,
    "version": _app_version(),
}

_HIDDEN_KEYS = ("secret", "config", "version")
_FILE_KEYS = frozenset({"webCertFile", "webKeyFile", "subCertFile", "subKeyFile"})
_PATH_KEYS = frozenset({"webPath", "subPath"})
_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def normalize_path(path: str) -> str:
    """Make sure a URL path starts and ends with a slash."""
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path += "/"
    return path


class SettingStore:
    """Key/value settings kept in a SQLite table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        with self._conn:
            self._conn.execute(
                'CREATE TABLE IF NOT EXISTS settings ('
                'id INTEGER PRIMARY KEY AUTOINCREMENT, "key" TEXT, value TEXT)'
            )

    def _lookup(self, key: str) -> str | None:
        row = self._conn.execute(
            'SELECT value FROM settings WHERE "key" = ? ORDER BY id LIMIT 1', (key,)
        ).fetchone()
        return None if row is None else row[0]

    def all_settings(self) -> dict[str, str]:
        """Return every setting, storing missing defaults; secret values are left out."""
        rows = self._conn.execute('SELECT "key", value FROM settings ORDER BY id').fetchall()
        settings = {key: value for key, value in rows}
        for key, default in DEFAULTS.items():
            if key not in settings:
                self.set_string(key, default)
                settings[key] = default
        for key in _HIDDEN_KEYS:
            settings.pop(key, None)
        return settings

    def reset(self) -> None:
        """Delete every stored setting."""
        with self._conn:
            self._conn.execute("DELETE FROM settings WHERE 1 = 1")

    def get_string(self, key: str) -> str:
        """Return a setting, falling back to its default."""
        value = self._lookup(key)
        if value is not None:
            return value
        if key not in DEFAULTS:
            raise new_error(f"key <{key}> not in defaultValueMap")
        return DEFAULTS[key]

    def get_int(self, key: str) -> int:
        """Return a setting as an integer; ValueError if it is not one."""
        return int(self.get_string(key))

    def get_bool(self, key: str) -> bool:
        """Return a setting as a boolean; ValueError if it is not one."""
        text = self.get_string(key)
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"invalid boolean: {text!r}")

    def set_string(self, key: str, value: str) -> None:
        """Store a setting, creating it when missing."""
        with self._conn:
            row = self._conn.execute(
                'SELECT id FROM settings WHERE "key" = ? ORDER BY id LIMIT 1', (key,)
            ).fetchone()
            if row is None:
                self._conn.execute(
                    'INSERT INTO settings ("key", value) VALUES (?, ?)', (key, value)
                )
            else:
                self._conn.execute("UPDATE settings SET value = ? WHERE id = ?", (value, row[0]))

    def web_path(self) -> str:
        """The panel's base URL path."""
        return normalize_path(self.get_string("webPath"))

    def set_web_path(self, path: str) -> None:
        """Store the panel's base URL path."""
        self.set_string("webPath", normalize_path(path))

    def sub_path(self) -> str:
        """The subscription server's base URL path."""
        return normalize_path(self.get_string("subPath"))

    def set_sub_path(self, path: str) -> None:
        """Store the subscription server's base URL path."""
        self.set_string("subPath", normalize_path(path))

    def secret(self) -> bytes:
        """The session secret; a generated default is persisted on first use."""
        value = self.get_string("secret")
        if value == DEFAULTS["secret"]:
            try:
                self.set_string("secret", value)
            except sqlite3.Error as exc:
                log.warning("save secret failed: %s", exc)
        return value.encode("utf-8")

    def time_location(self) -> ZoneInfo:
        """The configured time zone, or the default one if it does not exist."""
        name = self.get_string("timeLocation")
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            default = DEFAULTS["timeLocation"]
            log.error("location <%s> not exist, using default location: %s", name, default)
            return ZoneInfo(default)

    def final_sub_uri(self, host: str) -> str:
        """The public subscription URI, configured or derived from the settings."""
        settings = self.all_settings()
        if settings["subURI"]:
            return settings["subURI"]
        protocol = "https" if settings["subKeyFile"] and settings["subCertFile"] else "http"
        if settings["subDomain"]:
            host = settings["subDomain"]
        port = ":" + settings["subPort"]
        return f"{protocol}://{host}{port}{settings['subPath']}"

    def save(self, settings: Mapping[str, str] | str) -> None:
        """Update existing settings from a mapping or JSON object, all or nothing."""
        if isinstance(settings, str):
            settings = json.loads(settings)
        if not isinstance(settings, Mapping):
            raise ValueError("settings must be a JSON object")
        with self._conn:
            for key, value in settings.items():
                if not isinstance(value, str):
                    raise ValueError(f"setting {key!r} must be a string")
                if value and key in _FILE_KEYS and not os.path.exists(value):
                    raise new_error(" -> ", value, " is not exists")
                if key in _PATH_KEYS:
                    value = normalize_path(value)
                self._conn.execute(
                    'UPDATE settings SET value = ? WHERE "key" = ?', (value, key)
                )

    def save_config(self, config: Any) -> None:
        """Store the core configuration, re-indented."""
        if isinstance(config, (str, bytes)):
            config = json.loads(config)
        text = json.dumps(config, indent=2, ensure_ascii=False)
        with self._conn:
            self._conn.execute(
                'UPDATE settings SET value = ? WHERE "key" = ?', (text, "config")
            )