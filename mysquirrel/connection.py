"""
Connection wrapper: the gateway to all communication with the server.

A :class:`Connection` holds credentials and two modes, connects lazily on
first use and turns query templates into escaped SQL before handing them to
the backend. It never builds SQL by concatenating caller input.
"""

import contextlib
import logging
from typing import Any, Iterator, Optional, Set, Union

from . import constants
from .driver import Backend, MySQLdbBackend
from .exceptions import (
    DriverError,
    MySquirrelError,
    ParanoidModeError,
    TransactionError,
)
from .result import Result
from .statement import PreparedStatement
from .substitution import render_value, substitute, validate_template

logger = logging.getLogger(__name__)


class Connection:
    """
    Lazily connected MySQL session.

    Parameters
    ----------
    host, user, password, database : str
        Credentials and the database selected after connecting.
    charset : str, optional
        Character set applied after connecting.
    port : int
        TCP port of the server.
    backend : Backend, optional
        Client backend; a :class:`MySQLdbBackend` by default.
    paranoid : bool
        Start in paranoid mode (see :meth:`set_paranoid_mode`).
    unmagic : bool
        Start with escaping compensation on (see :meth:`set_unmagic_mode`).
    """

    def __init__(self, host: str, user: str, password: str, database: str,
                 charset: Optional[str] = None, port: int = 3306,
                 backend: Optional[Backend] = None,
                 paranoid: bool = False, unmagic: bool = False):
        self.host = host
        self.user = user
        self.password = password
        self.database = database
        self.charset = charset
        self.port = port
        self._backend = backend if backend is not None else MySQLdbBackend()
        self._paranoid = paranoid
        self._unmagic = unmagic
        self._statements: Set[PreparedStatement] = set()

    @classmethod
    def from_env(cls, **overrides) -> "Connection":
        """Build a connection from the ``MYSQUIRREL_*`` environment defaults."""
        from . import PARANOID

        kwargs = {
            "host": constants.DB_HOST,
            "user": constants.DB_USER,
            "password": constants.DB_PASS,
            "database": constants.DB_NAME,
            "charset": constants.DB_CHARSET or None,
            "port": constants.DB_PORT,
            "paranoid": PARANOID,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._backend.connected

    @property
    def paranoid_mode(self) -> bool:
        return self._paranoid

    @property
    def unmagic_mode(self) -> bool:
        return self._unmagic

    def set_paranoid_mode(self) -> None:
        """Disable raw queries and forbid quotes and comments in templates."""
        self._paranoid = True

    paranoid = set_paranoid_mode

    def set_unmagic_mode(self) -> None:
        """Strip upstream backslash escaping from string values before escaping."""
        self._unmagic = True

    unmagic = set_unmagic_mode

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _lazy_connect(self) -> None:
        if not self._backend.connected:
            self._backend.connect(
                self.host, self.user, self.password, self.database,
                charset=self.charset, port=self.port,
            )

    def _run(self, sql: str) -> Union[Result, int]:
        logger.debug("executing: %s", sql)
        cursor = self._backend.execute(sql)
        if cursor.description is None:
            count = cursor.rowcount
            self._backend.free(cursor)
            return count
        return Result(cursor, self._backend)

    def escape(self, value: Any) -> str:
        """Render ``value`` as a SQL literal, quoted unless numeric."""
        self._lazy_connect()
        return render_value(value, self._backend.escape, self._unmagic)

    def query(self, template: str, *params: Any) -> Union[Result, int]:
        """
        Run a template after substituting escaped parameters.

        Parameters may be passed positionally or as a single list/tuple::

            conn.query("UPDATE users SET email = ? WHERE id = ?", email, 5)

        Returns
        -------
        Result or int
            A Result for row-returning statements, else the affected count.

        Raises
        ------
        MultipleStatementsError, ParanoidModeError, ParameterMismatchError
            Before anything reaches the server.
        DriverError
            When the server rejects the statement.
        """
        self._lazy_connect()
        sql = substitute(
            template, params, self._backend.escape,
            paranoid=self._paranoid, unmagic=self._unmagic,
        )
        return self._run(sql)

    def raw_query(self, sql: str) -> Union[Result, int]:
        """Run ``sql`` verbatim. Refused in paranoid mode."""
        if self._paranoid:
            raise ParanoidModeError("raw_query() is disabled in paranoid mode.")
        self._lazy_connect()
        return self._run(sql)

    def prepare(self, template: str) -> PreparedStatement:
        self._lazy_connect()
        template = validate_template(template, self._paranoid)
        stmt = PreparedStatement(
            self._run, self._backend.escape, template,
            unmagic=self._unmagic, on_close=self._statements.discard,
        )
        self._statements.add(stmt)
        return stmt

    def affected_rows(self) -> Optional[int]:
        if not self._backend.connected:
            return None
        return self._backend.affected_rows()

    def last_insert_id(self) -> Optional[int]:
        if not self._backend.connected:
            return None
        return self._backend.last_insert_id()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin_transaction(self) -> int:
        self._lazy_connect()
        try:
            return self._run("BEGIN")
        except DriverError as exc:
            raise TransactionError(f"Can't begin: {exc}") from exc

    def commit(self) -> int:
        if not self._backend.connected:
            raise TransactionError("Can't commit: No transaction is currently in progress.")
        try:
            return self._run("COMMIT")
        except DriverError as exc:
            raise TransactionError(f"Can't commit: {exc}") from exc

    def rollback(self) -> int:
        if not self._backend.connected:
            raise TransactionError("Can't rollback: No transaction is currently in progress.")
        try:
            return self._run("ROLLBACK")
        except DriverError as exc:
            raise TransactionError(f"Can't rollback: {exc}") from exc

    @contextlib.contextmanager
    def transaction(self) -> Iterator["Connection"]:
        """BEGIN, then COMMIT when the block succeeds or ROLLBACK when it raises."""
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Deallocate open prepared statements and disconnect."""
        if not self._backend.connected:
            return
        # Every statement gets its DEALLOCATE; the first failure is re-raised
        # once the backend is closed.
        error = None
        for stmt in list(self._statements):
            try:
                stmt.close()
            except MySquirrelError as exc:
                if error is None:
                    error = exc
        self._statements.clear()
        self._backend.close()
        if error is not None:
            raise error

    def __repr__(self):
        return f"<Connection {self.user}@{self.host}:{self.port}/{self.database}>"


def connect(host: str, user: str, password: str, database: str,
            charset: Optional[str] = None, **kwargs) -> Connection:
    """Create a :class:`Connection`. Nothing is sent until the first query."""
    return Connection(host, user, password, database, charset, **kwargs)
