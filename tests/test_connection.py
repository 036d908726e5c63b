from __future__ import annotations

import pytest

import mysquirrel
from mysquirrel.connection import Connection, connect
from mysquirrel.exceptions import (
    ConnectionError,
    DriverError,
    MultipleStatementsError,
    ParameterMismatchError,
    ParanoidModeError,
    TransactionError,
)
from mysquirrel.result import Result

from conftest import FakeBackend, FakeCursor


def test_connects_lazily(conn, backend):
    assert backend.connects == 0
    assert not conn.connected
    conn.query("SELECT ?", 1)
    conn.query("SELECT ?", 2)
    assert backend.connects == 1
    assert conn.connected


def test_connection_failure_surfaces():
    conn = Connection("nowhere", "u", "p", "db", backend=FakeBackend(fail_connect=True))
    with pytest.raises(ConnectionError):
        conn.query("SELECT 1")


def test_query_sends_substituted_sql(conn, backend):
    conn.query("SELECT * FROM users WHERE id = ?", 5)
    conn.query("UPDATE users SET email = ? WHERE id = ?", "a@b.com", 5)
    assert backend.statements == [
        "SELECT * FROM users WHERE id = 5",
        "UPDATE users SET email = 'a@b.com' WHERE id = 5",
    ]


def test_query_returns_affected_count_for_non_row_statements(conn, backend):
    backend.respond("UPDATE", FakeCursor(rowcount=3))
    assert conn.query("UPDATE users SET active = ?", 1) == 3
    assert backend.freed[-1].closed


def test_query_returns_result_for_row_statements(conn, backend):
    backend.respond("SELECT", FakeCursor(rows=[(1, "bob")], columns=["id", "name"]))
    result = conn.query("SELECT id, name FROM users WHERE id = ?", 1)
    assert isinstance(result, Result)
    assert result.fetch_assoc() == {"id": 1, "name": "bob"}


def test_mismatch_and_separator_never_reach_server(conn, backend):
    with pytest.raises(ParameterMismatchError):
        conn.query("SELECT ? + ?", 1)
    with pytest.raises(MultipleStatementsError):
        conn.query("SELECT 1; SELECT 2")
    assert backend.statements == []


def test_paranoid_mode(conn, backend):
    assert not conn.paranoid_mode
    conn.paranoid()
    assert conn.paranoid_mode
    with pytest.raises(ParanoidModeError):
        conn.query("SELECT * FROM users WHERE name = 'x'")
    with pytest.raises(ParanoidModeError):
        conn.raw_query("SELECT 1")
    with pytest.raises(ParanoidModeError):
        conn.prepare("SELECT * FROM users -- comment")
    conn.query("SELECT * FROM users WHERE name = ?", "x")
    assert backend.statements == ["SELECT * FROM users WHERE name = 'x'"]


def test_raw_query_is_sent_verbatim(conn, backend):
    conn.raw_query("SELECT 1; SELECT 2")
    assert backend.statements == ["SELECT 1; SELECT 2"]


def test_unmagic_mode(conn, backend):
    conn.unmagic()
    assert conn.unmagic_mode
    conn.query("SELECT ?", "O\\'Reilly")
    assert backend.statements == ["SELECT 'O\\'Reilly'"]


def test_escape(conn):
    assert conn.escape("it's") == "'it\\'s'"
    assert conn.escape(7) == "7"


def test_driver_error_propagates(conn, backend):
    backend.respond("SELECT", DriverError(1146, "Table 'app.nope' doesn't exist"))
    with pytest.raises(DriverError) as excinfo:
        conn.query("SELECT * FROM nope WHERE id = ?", 1)
    assert excinfo.value.code == 1146
    assert str(excinfo.value).startswith("Error 1146:")


def test_affected_rows_and_last_insert_id(conn):
    assert conn.affected_rows() is None
    assert conn.last_insert_id() is None
    conn.query("INSERT INTO users (name) VALUES (?)", "bob")
    assert conn.affected_rows() == 1
    assert conn.last_insert_id() == 42


def test_transaction_statements(conn, backend):
    conn.begin_transaction()
    conn.commit()
    conn.begin_transaction()
    conn.rollback()
    assert backend.statements == ["BEGIN", "COMMIT", "BEGIN", "ROLLBACK"]


@pytest.mark.parametrize("method", ["commit", "rollback"])
def test_commit_and_rollback_require_connection(conn, backend, method):
    with pytest.raises(TransactionError, match="No transaction"):
        getattr(conn, method)()
    assert backend.connects == 0


def test_transaction_driver_failure(conn, backend):
    backend.respond("COMMIT", DriverError(1213, "Deadlock found"))
    conn.begin_transaction()
    with pytest.raises(TransactionError, match="Can't commit: Error 1213") as excinfo:
        conn.commit()
    assert isinstance(excinfo.value.__cause__, DriverError)


def test_transaction_context_commits(conn, backend):
    with conn.transaction():
        conn.query("DELETE FROM users WHERE id = ?", 1)
    assert backend.statements == ["BEGIN", "DELETE FROM users WHERE id = 1", "COMMIT"]


def test_transaction_context_rolls_back(conn, backend):
    with pytest.raises(RuntimeError):
        with conn.transaction():
            raise RuntimeError("boom")
    assert backend.statements == ["BEGIN", "ROLLBACK"]


def test_close_deallocates_open_statements(backend):
    with Connection("localhost", "user", "pass", "app", backend=backend) as conn:
        stmt = conn.prepare("SELECT ?")
    assert stmt.closed
    assert backend.statements[-1] == f"DEALLOCATE PREPARE {stmt.name}"
    assert not backend.connected


def test_connect_factory(backend):
    conn = connect("localhost", "user", "pass", "app", "utf8mb4", backend=backend)
    assert conn.charset == "utf8mb4"
    assert repr(conn) == "<Connection user@localhost:3306/app>"


def test_from_env(monkeypatch, backend):
    monkeypatch.setattr(mysquirrel.constants, "DB_HOST", "db.internal")
    monkeypatch.setattr(mysquirrel, "PARANOID", True)
    conn = Connection.from_env(backend=backend, user="svc")
    assert conn.host == "db.internal"
    assert conn.user == "svc"
    assert conn.paranoid_mode


def test_query_with_binary_parameter(conn, backend):
    conn.query("INSERT INTO blobs (data) VALUES (?)", b"\xff\x00\xfe")
    assert backend.statements == ["INSERT INTO blobs (data) VALUES (X'ff00fe')"]


def test_close_deallocates_every_statement_when_one_fails(conn, backend):
    first = conn.prepare("SELECT ?")
    second = conn.prepare("SELECT ? + 1")
    backend.respond("DEALLOCATE", DriverError(1243, "Unknown prepared statement handler"))
    with pytest.raises(DriverError):
        conn.close()
    assert first.closed and second.closed
    assert sum(s.startswith("DEALLOCATE") for s in backend.statements) == 2
    assert not backend.connected

    # A new session must not deallocate names from the old one.
    backend.responses.clear()
    conn.query("SELECT ?", 1)
    backend.statements.clear()
    conn.close()
    assert backend.statements == []
