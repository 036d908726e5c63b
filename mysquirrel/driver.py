"""
Database client backends.

mysquirrel never talks to the server itself. A backend wraps one client
library connection and exposes the handful of capabilities the rest of the
package needs: connect, escape, execute, affected rows, last insert id, and
the cursor housekeeping used by :class:`~mysquirrel.result.Result`.

Only one backend ships, :class:`MySQLdbBackend`, built on the ``MySQLdb``
module. That module is either PyMySQL installed under the ``MySQLdb`` name
or the native ``mysqlclient`` package; see ``mysquirrel/__init__.py``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import MySQLdb

from .exceptions import CharacterSetError, ConnectionError, DriverError

logger = logging.getLogger(__name__)

# FIELD_TYPE code -> name, e.g. 253 -> "VAR_STRING". Aliases such as CHAR
# are declared after the canonical name, so the first name wins.
_FIELD_TYPES: Dict[int, str] = {}
for _name, _code in vars(MySQLdb.FIELD_TYPE).items():
    if _name.isupper() and isinstance(_code, int):
        _FIELD_TYPES.setdefault(_code, _name)


def _driver_error(exc: Exception) -> DriverError:
    """Convert a ``MySQLdb.MySQLError`` into a :class:`DriverError`."""
    args = getattr(exc, "args", ())
    if len(args) >= 2 and isinstance(args[0], int):
        return DriverError(args[0], str(args[1]))
    return DriverError(None, str(exc))


class Backend(ABC):
    """
    Capability set mysquirrel needs from a database client.

    Cursors handed out by :meth:`execute` follow DB-API 2.0: ``description``,
    ``rowcount``, ``fetchone``, ``fetchall`` and ``close``.
    """

    @property
    @abstractmethod
    def connected(self) -> bool:
        ...

    @abstractmethod
    def connect(self, host: str, user: str, password: str, database: str,
                charset: Optional[str] = None, port: int = 3306) -> None:
        """
        Open the connection and select ``database``.

        Raises :class:`ConnectionError` on failure and
        :class:`CharacterSetError` when ``charset`` cannot be applied.
        """
        ...

    @abstractmethod
    def escape(self, text: str) -> str:
        """Escape ``text`` for use inside a single-quoted literal."""
        ...

    @abstractmethod
    def execute(self, sql: str) -> Any:
        """
        Run one statement and return its cursor.

        Raises :class:`DriverError` with the server's code and message.
        """
        ...

    @abstractmethod
    def affected_rows(self) -> int:
        ...

    @abstractmethod
    def last_insert_id(self) -> int:
        ...

    def seek(self, cursor: Any, position: int) -> bool:
        """Move ``cursor`` to ``position``. Returns False when unsupported."""
        return False

    def field_info(self, cursor: Any, offset: int) -> Dict[str, Any]:
        """Describe column ``offset`` of ``cursor``'s result set."""
        name, type_code, display_size, internal_size, precision, scale, null_ok = (
            tuple(cursor.description[offset]) + (None,) * 7
        )[:7]
        return {
            "name": name,
            "type": type_code,
            "length": internal_size,
            "precision": precision,
            "scale": scale,
            "nullable": bool(null_ok),
            "table": None,
            "flags": None,
        }

    def free(self, cursor: Any) -> None:
        cursor.close()

    @abstractmethod
    def close(self) -> None:
        ...

    def __repr__(self):
        return f"<{self.__class__.__name__}>"


class MySQLdbBackend(Backend):
    """
    Backend over the ``MySQLdb`` API.

    Parameters
    ----------
    buffered : bool
        Use the buffered ``Cursor`` (rewindable) when True, the streaming
        ``SSCursor`` otherwise.
    **connect_kwargs
        Extra keyword arguments forwarded to ``MySQLdb.connect()``.
    """

    def __init__(self, buffered: bool = True, **connect_kwargs):
        self.buffered = buffered
        self.connect_kwargs = connect_kwargs
        self._conn: Optional[MySQLdb.connections.Connection] = None

    def __getattr__(self, name: str) -> Any:
        """
        Forward attribute access to the underlying real connection.
        """
        conn = self.__dict__.get("_conn")
        if conn is None:
            raise AttributeError(name)
        return getattr(conn, name)

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self, host, user, password, database, charset=None, port=3306):
        try:
            self._conn = MySQLdb.connect(
                host=host,
                user=user,
                password=password,
                database=database,
                port=port,
                **self.connect_kwargs,
            )
        except MySQLdb.MySQLError as exc:
            raise ConnectionError(
                f"Could not connect to {host} and select database {database}: {exc}"
            ) from exc
        logger.info("connected to %s@%s:%s/%s", user, host, port, database)

        if charset:
            try:
                self._conn.set_character_set(charset)
            except MySQLdb.MySQLError as exc:
                # Escaping depends on the charset; never keep the connection.
                conn, self._conn = self._conn, None
                try:
                    conn.close()
                except MySQLdb.MySQLError as close_exc:
                    logger.warning("closing after charset failure: %s", close_exc)
                raise CharacterSetError(
                    f"Could not change the character set to {charset}: {exc}"
                ) from exc

    def escape(self, text: str) -> str:
        escaped = self._conn.escape_string(text)
        # mysqlclient hands back bytes, PyMySQL hands back str.
        if isinstance(escaped, bytes):
            return escaped.decode(getattr(self._conn, "encoding", "utf-8"))
        return escaped

    def execute(self, sql: str):
        if self.buffered:
            cursor = self._conn.cursor()
        else:
            cursor = self._conn.cursor(MySQLdb.cursors.SSCursor)
        try:
            cursor.execute(sql)
        except MySQLdb.MySQLError as exc:
            cursor.close()
            raise _driver_error(exc) from exc
        return cursor

    def affected_rows(self) -> int:
        return self._conn.affected_rows()

    def last_insert_id(self) -> int:
        return self._conn.insert_id()

    def seek(self, cursor, position):
        if not hasattr(cursor, "scroll"):
            return False
        try:
            cursor.scroll(position, mode="absolute")
        except MySQLdb.NotSupportedError:
            return False
        return True

    def field_info(self, cursor, offset):
        info = super().field_info(cursor, offset)
        info["type"] = _FIELD_TYPES.get(info["type"], info["type"])
        # PyMySQL keeps the full column packets on the result; mysqlclient
        # does not expose them, so table and flags stay None there.
        fields = getattr(getattr(cursor, "_result", None), "fields", None)
        if fields and offset < len(fields):
            info["table"] = fields[offset].table_name
            info["flags"] = fields[offset].flags
        return info

    def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            conn.close()
        except MySQLdb.MySQLError as exc:
            raise _driver_error(exc) from exc

    def __repr__(self):
        state = "connected" if self.connected else "idle"
        return f"<MySQLdbBackend {state}>"
