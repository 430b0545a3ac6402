import sqlite3

import pytest

from orm.model import Model


class FakeDatabase:
    """Records every execute call and answers from queued results."""

    def __init__(self):
        self.calls = []
        self.select_results = []
        self.insert_id = 1
        self.rowcount = 1

    def execute_select(self, sql, params=None):
        self.calls.append(("select", sql, dict(params or {})))
        return self.select_results.pop(0) if self.select_results else []

    def execute_insert(self, sql, params=None):
        self.calls.append(("insert", sql, dict(params or {})))
        return self.insert_id

    def execute_update(self, sql, params=None):
        self.calls.append(("update", sql, dict(params or {})))
        return self.rowcount

    def execute_delete(self, sql, params=None):
        self.calls.append(("delete", sql, dict(params or {})))
        return self.rowcount

    @property
    def last(self):
        return self.calls[-1]


class SqliteDatabase:
    """In-memory sqlite stand-in; sqlite understands `:name` placeholders natively."""

    def __init__(self):
        self.conn = sqlite3.connect(":memory:")
        self.conn.row_factory = sqlite3.Row

    def _run(self, sql, params):
        args = {key.lstrip(":"): value for key, value in (params or {}).items()}
        cur = self.conn.execute(sql, args)
        self.conn.commit()
        return cur

    def execute_select(self, sql, params=None):
        return [dict(row) for row in self._run(sql, params).fetchall()]

    def execute_insert(self, sql, params=None):
        return self._run(sql, params).lastrowid

    def execute_update(self, sql, params=None):
        return self._run(sql, params).rowcount

    def execute_delete(self, sql, params=None):
        return self._run(sql, params).rowcount


SCHEMA = """
CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, age INTEGER, a INTEGER, b INTEGER);
CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, title TEXT);
CREATE TABLE phones (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, number TEXT);
CREATE TABLE roles (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT);
CREATE TABLE roles_users (user_id INTEGER, role_id INTEGER);
"""


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()
    monkeypatch.setattr(Model, "database", db)
    return db


@pytest.fixture
def sqlite_db(monkeypatch):
    db = SqliteDatabase()
    db.conn.executescript(SCHEMA)
    monkeypatch.setattr(Model, "database", db)
    yield db
    db.conn.close()
