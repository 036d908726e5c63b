from __future__ import annotations

import pytest
from pymysql.converters import escape_string

from mysquirrel.connection import Connection
from mysquirrel.driver import Backend
from mysquirrel.exceptions import ConnectionError


class FakeCursor:
    """DB-API cursor over canned rows."""

    def __init__(self, rows=None, columns=None, rowcount=None, seekable=True):
        self.rows = list(rows or [])
        self.description = (
            None if columns is None
            else tuple((c, 253, None, 255, 255, 0, True) for c in columns)
        )
        self.rowcount = len(self.rows) if rowcount is None else rowcount
        self.seekable = seekable
        self.position = 0
        self.closed = False

    def fetchone(self):
        if self.position >= len(self.rows):
            return None
        row = self.rows[self.position]
        self.position += 1
        return row

    def fetchall(self):
        rows = self.rows[self.position:]
        self.position = len(self.rows)
        return rows

    def close(self):
        self.closed = True


class FakeBackend(Backend):
    """Records every statement; escapes with PyMySQL's own escape_string."""

    def __init__(self, fail_connect=False):
        self.fail_connect = fail_connect
        self.statements: list[str] = []
        self.responses: list[tuple[str, object]] = []
        self.connects = 0
        self.freed: list[FakeCursor] = []
        self._connected = False

    def respond(self, prefix, response):
        self.responses.append((prefix, response))

    @property
    def connected(self):
        return self._connected

    def connect(self, host, user, password, database, charset=None, port=3306):
        self.connects += 1
        if self.fail_connect:
            raise ConnectionError(f"Could not connect to {host}.")
        self._connected = True

    def escape(self, text):
        return escape_string(text)

    def execute(self, sql):
        self.statements.append(sql)
        for prefix, response in self.responses:
            if sql.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                return response
        return FakeCursor(rowcount=1)

    def affected_rows(self):
        return 1

    def last_insert_id(self):
        return 42

    def seek(self, cursor, position):
        if not cursor.seekable:
            return False
        cursor.position = position
        return True

    def free(self, cursor):
        self.freed.append(cursor)
        cursor.close()

    def close(self):
        self._connected = False


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def conn(backend):
    return Connection("localhost", "user", "pass", "app", backend=backend)
