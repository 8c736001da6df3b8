# src/taskdeck/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
import time
from pathlib import Path

from ..errors import StorageError

logger = logging.getLogger(__name__)


class SqliteKVStore:
    """
    SQLite-backed key-value store.

    One table, one row per key. Values are opaque strings.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskdeck.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteKVStore ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get_item(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"cannot open {self._db_path}: {e}") from e
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row[0])
        except sqlite3.Error as e:
            raise StorageError(f"read failed key={key}: {e}") from e
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"cannot open {self._db_path}: {e}") from e
        try:
            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
            logger.debug("kv set key=%s bytes=%d", key, len(value))
        except sqlite3.Error as e:
            raise StorageError(f"write failed key={key}: {e}") from e
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"cannot open {self._db_path}: {e}") from e
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"delete failed key={key}: {e}") from e
        finally:
            conn.close()


class JsonFileKVStore:
    """
    Key-value store kept as a single JSON object on disk.

    Every write rewrites the whole file via a temp file + os.replace,
    so readers never observe a half-written document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable key-value file %s; treating as empty.", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            raise StorageError(f"write failed {self._path}: {e}") from e
        with contextlib.suppress(OSError):
            # Task titles can be personal; keep the file private on disk.
            os.chmod(self._path, 0o600)

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)
        logger.debug("kv set key=%s bytes=%d path=%s", key, len(value), self._path)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)
