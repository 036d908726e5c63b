"""
Configuration module for mysquirrel connections and SQL markers.

Connection parameters are loaded from environment variables so that
application code can build a :class:`~mysquirrel.connection.Connection`
without hard-coding credentials. A default empty password is used when the
environment variable is not provided.

The second half of the module holds the fixed markers the substitution
engine looks for in query templates.
"""

import os


# ---------------------------------------------------------------------------
# Default connection configuration
# ---------------------------------------------------------------------------

#: Host of the MySQL server.
DB_HOST: str = os.getenv("MYSQUIRREL_DB_HOST", "127.0.0.1")

#: TCP port of the MySQL server.
DB_PORT: int = int(os.getenv("MYSQUIRREL_DB_PORT", "3306"))

#: Username used to log in.
DB_USER: str = os.getenv("MYSQUIRREL_DB_USER", "root")

#: Password used to log in (default is empty).
DB_PASS: str = os.getenv("MYSQUIRREL_DB_PASS", "")

#: Database selected right after connecting.
DB_NAME: str = os.getenv("MYSQUIRREL_DB_NAME", "mysql")

#: Character set requested after connecting. Empty disables the request.
DB_CHARSET: str = os.getenv("MYSQUIRREL_DB_CHARSET", "utf8mb4")

#: Raw value of the paranoid switch, resolved in ``mysquirrel/__init__.py``.
PARANOID_ENV: str = os.getenv("MYSQUIRREL_PARANOID", "")

#: Values of ``MYSQUIRREL_PARANOID`` that turn paranoid mode on.
TRUTHY = ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Template markers
# ---------------------------------------------------------------------------

#: Positional placeholder in query templates.
PLACEHOLDER: str = "?"

#: Statement separator. Templates containing it are rejected.
STATEMENT_SEPARATOR: str = ";"

#: Substrings forbidden in templates while paranoid mode is active.
PARANOID_MARKERS = ("'", '"', "--")

#: Prefix of server-side prepared statement names.
STATEMENT_PREFIX: str = "ps_"
