"""
Server-side prepared statements emulated with plain SQL.

The statement is created with ``PREPARE``, parameters are bound through user
variables with ``SET`` and the statement runs with ``EXECUTE ... USING``.
``DEALLOCATE PREPARE`` is issued exactly once when the statement is closed.
"""

import logging
import uuid
from typing import Any, Callable, Union

from .constants import STATEMENT_PREFIX
from .exceptions import ParameterMismatchError, StatementClosedError
from .result import Result
from .substitution import count_placeholders, expand_params, render_value

logger = logging.getLogger(__name__)


def gen_statement_name() -> str:
    """Return a name unique within this process, e.g. ``ps_1f0c...``."""
    return STATEMENT_PREFIX + uuid.uuid4().hex


class PreparedStatement:
    """
    Handle on a server-side prepared statement.

    Instances are created by :meth:`Connection.prepare`, which validates the
    template first. Use the handle as a context manager, or call
    :meth:`close`, to guarantee deallocation.

    Parameters
    ----------
    run : callable
        Sends one SQL statement and returns a Result or an affected count.
    escape : callable
        The driver's string escape function.
    template : str
        Already validated query template.
    unmagic : bool
        Strip upstream backslash escaping from string parameters.
    on_close : callable, optional
        Called with the statement once it has been deallocated.
    """

    def __init__(self, run: Callable[[str], Union[Result, int]],
                 escape: Callable[[str], str], template: str,
                 unmagic: bool = False, on_close=None):
        self._run = run
        self._escape = escape
        self._on_close = on_close
        self.template = template
        self.unmagic = unmagic
        self.num_args = count_placeholders(template)
        self.name = gen_statement_name()
        self.closed = False
        self.executions = 0

        self._run(f"PREPARE {self.name} FROM '{escape(template)}'")

    def __enter__(self) -> "PreparedStatement":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def execute(self, *params: Any) -> Union[Result, int]:
        """
        Bind ``params`` and run the statement.

        Parameters may be passed positionally or as a single list/tuple.

        Returns
        -------
        Result or int
            A Result for row-returning statements, else the affected count.

        Raises
        ------
        StatementClosedError
            If the statement has already been deallocated.
        ParameterMismatchError
            If the number of params differs from the placeholder count.
        """
        if self.closed:
            raise StatementClosedError(f"Statement {self.name} has been deallocated.")

        params = expand_params(params)
        if len(params) != self.num_args:
            raise ParameterMismatchError(
                f"Prepared statement has {self.num_args} placeholders, "
                f"but {len(params)} parameters given."
            )

        varnames = []
        for i, param in enumerate(params):
            varname = f"@{self.name}_v{i}"
            value = render_value(param, self._escape, self.unmagic)
            self._run(f"SET {varname} = {value}")
            varnames.append(varname)

        sql = f"EXECUTE {self.name}"
        if varnames:
            sql += " USING " + ", ".join(varnames)
        result = self._run(sql)
        self.executions += 1
        return result

    def close(self) -> None:
        """Deallocate the statement on the server. Later calls do nothing."""
        if self.closed:
            return
        self.closed = True
        try:
            self._run(f"DEALLOCATE PREPARE {self.name}")
        finally:
            if self._on_close is not None:
                self._on_close(self)
        logger.debug("deallocated %s after %d executions", self.name, self.executions)

    def __repr__(self):
        state = "closed" if self.closed else "ready"
        return f"<PreparedStatement {self.name} {state} args={self.num_args}>"
