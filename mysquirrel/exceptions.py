"""
mysquirrel exceptions.

No error passes silently. Every failure is raised to the caller as one of the
types below; nothing is retried and nothing is swallowed. It is the caller's
responsibility to decide whether to retry or abort.
"""

from typing import Optional


class MySquirrelError(Exception):
    """Base class of every error raised by mysquirrel."""


class ConnectionError(MySquirrelError):
    """Connecting to the server or selecting the database failed."""


class CharacterSetError(ConnectionError):
    """The requested character set could not be applied."""


class MultipleStatementsError(MySquirrelError):
    """The template contains a statement separator."""


class ParanoidModeError(MySquirrelError):
    """A forbidden template or a raw query was used in paranoid mode."""


class ParameterMismatchError(MySquirrelError):
    """Placeholder count and parameter count disagree."""


class TransactionError(MySquirrelError):
    """BEGIN, COMMIT or ROLLBACK could not be issued."""


class StatementClosedError(MySquirrelError):
    """A prepared statement was used after it was deallocated."""


class DriverError(MySquirrelError):
    """
    Error reported by the database server or the client library.

    Parameters
    ----------
    code : int or None
        The MySQL error number, when the driver supplies one.
    message : str
        The driver's error message.
    """

    def __init__(self, code: Optional[int], message: str):
        self.code = code
        self.message = message
        super().__init__(f"Error {code}: {message}")
