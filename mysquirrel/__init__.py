"""
mysquirrel: protect Python and MySQL against injection attacks.

Queries are written as templates with ``?`` placeholders and parameters are
escaped by the database client before being substituted in, or bound to
server-side prepared statements::

    import mysquirrel

    db = mysquirrel.connect("localhost", "user", "pass", "database")
    db.paranoid()

    for row in db.query("SELECT * FROM users WHERE id = ?", user_id):
        print(row["name"])

    db.query("UPDATE users SET email = ? WHERE id = ?", new_email, user_id)

    with db.prepare("INSERT INTO users (name, email) VALUES (?, ?)") as stmt:
        stmt.execute(name, email)

Driver selection
----------------
By default PyMySQL is installed under the ``MySQLdb`` name, so no C
extension is needed. Set ``builtins.force_use_libmysqlclient = True`` before
importing this package to use the native ``mysqlclient`` driver instead.

Paranoid default
----------------
``Connection.from_env()`` starts in paranoid mode when enabled by, in order
of priority:

1. ``builtins.MYSQUIRREL_PARANOID``  (explicit, hard override)
2. environment ``MYSQUIRREL_PARANOID``
3. default: off

Developers can verify which mode is active:
    ``import mysquirrel``

    ``print(mysquirrel.PARANOID)``
"""

import builtins

if not getattr(builtins, "force_use_libmysqlclient", False):
    import pymysql
    pymysql.install_as_MySQLdb()

# Load constants from the configuration module
from . import constants
from .connection import Connection, connect
from .driver import Backend, MySQLdbBackend
from .exceptions import (
    CharacterSetError,
    ConnectionError,
    DriverError,
    MultipleStatementsError,
    MySquirrelError,
    ParameterMismatchError,
    ParanoidModeError,
    StatementClosedError,
    TransactionError,
)
from .result import Result, Row
from .statement import PreparedStatement

# ------------------------------------------------------------------
# Resolve paranoid default
# ------------------------------------------------------------------
if hasattr(builtins, "MYSQUIRREL_PARANOID"):
    MODE = str(getattr(builtins, "MYSQUIRREL_PARANOID", "")).lower()
else:
    MODE = constants.PARANOID_ENV.lower()

PARANOID: bool = MODE in constants.TRUTHY

__version__ = "0.4.0"

__all__ = [
    "connect",
    "Connection",
    "PreparedStatement",
    "Result",
    "Row",
    "Backend",
    "MySQLdbBackend",
    "MySquirrelError",
    "ConnectionError",
    "CharacterSetError",
    "MultipleStatementsError",
    "ParanoidModeError",
    "ParameterMismatchError",
    "TransactionError",
    "StatementClosedError",
    "DriverError",
    "PARANOID",
]
