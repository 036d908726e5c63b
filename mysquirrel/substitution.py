"""
Placeholder substitution for query templates.

A template is split on ``?`` and each parameter, rendered as a SQL literal,
is appended to the segment before it. Numbers are inlined verbatim and
binary data becomes a hex literal; every other value goes through the
driver's own escape function and is wrapped in single quotes. No escaping
algorithm is implemented here: the ``escape`` callable always comes from the
database client.
"""

import math
import re
from decimal import Decimal
from typing import Any, Callable, List, Sequence

from .constants import (
    PARANOID_MARKERS,
    PLACEHOLDER,
    STATEMENT_SEPARATOR,
)
from .exceptions import (
    MultipleStatementsError,
    ParameterMismatchError,
    ParanoidModeError,
)

Escape = Callable[[str], str]

_SLASHED = re.compile(r"\\(.?)", re.DOTALL)
_MYSQL_ESCAPE = re.compile(r"\\(.)", re.DOTALL)

# Sequences MySQL decodes inside string literals. \% and \_ keep the slash.
_MYSQL_SEQUENCES = {
    "0": "\0",
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "Z": "\x1a",
    "%": "\\%",
    "_": "\\_",
}


def count_placeholders(template: str) -> int:
    return template.count(PLACEHOLDER)


def validate_template(template: str, paranoid: bool = False) -> str:
    """
    Strip a template and check it may be sent to the server.

    Parameters
    ----------
    template : str
        Query template with ``?`` placeholders.
    paranoid : bool
        Whether quotes and comment markers are forbidden.

    Returns
    -------
    str
        The stripped template.

    Raises
    ------
    MultipleStatementsError
        If the template contains a statement separator.
    ParanoidModeError
        If ``paranoid`` is set and the template contains a quote or ``--``.
    """
    template = template.strip()
    if STATEMENT_SEPARATOR in template:
        raise MultipleStatementsError(
            "You cannot send multiple statements at once. "
            "Please use raw_query() instead."
        )
    if paranoid and any(marker in template for marker in PARANOID_MARKERS):
        raise ParanoidModeError(
            "While in paranoid mode, you cannot use queries "
            "with quotes or comments in them."
        )
    return template


def expand_params(params: Sequence[Any]) -> List[Any]:
    """A single list or tuple argument stands for the whole parameter list."""
    if len(params) == 1 and isinstance(params[0], (list, tuple)):
        return list(params[0])
    return list(params)


def strip_slashes(text: str) -> str:
    """
    Undo backslash escaping applied upstream.

    ``\\x`` becomes ``x``, ``\\0`` becomes NUL and a trailing lone backslash
    is dropped.
    """
    return _SLASHED.sub(lambda m: "\0" if m.group(1) == "0" else m.group(1), text)


def unescape(text: str) -> str:
    """Decode the escape sequences MySQL recognizes in a string literal."""
    return _MYSQL_ESCAPE.sub(
        lambda m: _MYSQL_SEQUENCES.get(m.group(1), m.group(1)), text
    )


def render_value(value: Any, escape: Escape, unmagic: bool = False) -> str:
    """
    Render one parameter as a SQL literal.

    Parameters
    ----------
    value : Any
        ``None`` renders as ``NULL``, ``bool`` as ``1``/``0``, numbers
        verbatim, binary data as an ``X'...'`` hex literal. Anything else
        is converted to text, escaped and quoted.
    escape : callable
        The driver's string escape function.
    unmagic : bool
        Strip upstream backslash escaping before escaping.

    Returns
    -------
    str
        SQL literal.

    Raises
    ------
    ValueError
        For NaN or infinite numbers, which MySQL has no literal for.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    # Subclasses may override __str__, so render the canonical type.
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"cannot render non-finite number {value!r}")
        return repr(value)
    if isinstance(value, Decimal):
        value = Decimal(value)
        if not value.is_finite():
            raise ValueError(f"cannot render non-finite number {value!r}")
        return str(value)

    # Binary data is sent as a hex literal; no text encoding applies.
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "X'" + bytes(value).hex() + "'"

    text = str(value)
    if unmagic:
        text = strip_slashes(text)
    return "'" + escape(text) + "'"


def substitute(
        template: str,
        params: Sequence[Any],
        escape: Escape,
        paranoid: bool = False,
        unmagic: bool = False,
) -> str:
    """
    Build a statement from a template and its parameters.

    Parameters
    ----------
    template : str
        Query template containing ``?`` placeholders.
    params : Sequence[Any]
        Positional parameters, or a single list/tuple holding them.
    escape : callable
        The driver's string escape function.
    paranoid : bool
        Reject quotes and comment markers in the template.
    unmagic : bool
        Strip upstream backslash escaping from string values.

    Returns
    -------
    str
        The statement with every placeholder replaced.

    Raises
    ------
    MultipleStatementsError, ParanoidModeError
        See :func:`validate_template`.
    ParameterMismatchError
        If the number of placeholders does not match the number of params.
    """
    template = validate_template(template, paranoid)
    params = expand_params(params)

    count = count_placeholders(template)
    if count != len(params):
        raise ParameterMismatchError(
            f"Query has {count} placeholders, but {len(params)} parameters given."
        )

    parts = template.split(PLACEHOLDER)
    sql = ""
    for i in range(count):
        sql += parts[i] + render_value(params[i], escape, unmagic)
    sql += parts[-1]
    return sql
