# birdmap:storage.py

# MIT License
#
# Copyright (c) 2025 Jonas Waldeck
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND.

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

DDL = """
CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  value BLOB NOT NULL,
  updated_at_utc TEXT NOT NULL
);
"""


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def connect(db_path: Path) -> sqlite3.Connection:
    ensure_parent_dir(db_path)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.executescript(DDL)


def kv_get(conn: sqlite3.Connection, key: str) -> Optional[bytes]:
    row = conn.execute("SELECT value FROM kv_store WHERE key=?;", (key,)).fetchone()
    if row is None:
        return None
    return bytes(row[0])


def kv_set(conn: sqlite3.Connection, key: str, value: bytes) -> None:
    conn.execute(
        """
        INSERT INTO kv_store(key, value, updated_at_utc)
        VALUES(?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET
          value=excluded.value,
          updated_at_utc=excluded.updated_at_utc;
        """,
        (key, sqlite3.Binary(value), _utc_now_iso()),
    )


class SqliteKeyValueStore:
    """Byte blobs by key in a single sqlite table; one short-lived connection per call."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def get(self, key: str) -> Optional[bytes]:
        conn = connect(self.db_path)
        try:
            ensure_schema(conn)
            return kv_get(conn, key)
        finally:
            conn.close()

    def set(self, key: str, value: bytes) -> None:
        conn = connect(self.db_path)
        try:
            ensure_schema(conn)
            with conn:
                kv_set(conn, key, value)
        finally:
            conn.close()


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)
