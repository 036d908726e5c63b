"""
Result set wrapper.

A :class:`Result` is returned whenever a statement produces rows, which is
usually the case with SELECT queries. It owns the driver cursor and frees it
on :meth:`Result.close` or when a ``with`` block exits.
"""

import logging
from types import SimpleNamespace
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class Row(tuple):
    """
    A row addressable both by position and by column name.

    ``row[0]`` and ``row["name"]`` return the same value.
    """

    def __new__(cls, values: Sequence[Any], columns: Sequence[str]):
        row = super().__new__(cls, values)
        row._columns = tuple(columns)
        return row

    def __getnewargs__(self):
        return tuple(self), self._columns

    def __getitem__(self, key):
        if isinstance(key, str):
            try:
                return super().__getitem__(self._columns.index(key))
            except ValueError:
                raise KeyError(key) from None
        return super().__getitem__(key)

    def keys(self) -> Tuple[str, ...]:
        return self._columns

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def as_dict(self) -> Dict[str, Any]:
        return dict(zip(self._columns, self))

    def __repr__(self):
        return f"Row({self.as_dict()!r})"


class Result:
    """
    Forward-only cursor over one result set.

    Fetch methods return ``None`` once the rows are exhausted. Iterating a
    result rewinds it first and yields one ``dict`` per row.

    Parameters
    ----------
    cursor : DB-API cursor
        Cursor that executed the statement.
    backend : Backend
        Backend that created ``cursor``; used for seeking and freeing.
    """

    def __init__(self, cursor, backend):
        self._cursor = cursor
        self._backend = backend
        self._columns = tuple(d[0] for d in (cursor.description or ()))
        self._index = 0
        self.closed = False

    def __enter__(self) -> "Result":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        self.rewind()
        while True:
            row = self.fetch_assoc()
            if row is None:
                return
            yield row

    def _next(self) -> Optional[tuple]:
        values = self._cursor.fetchone()
        if values is not None:
            self._index += 1
        return values

    @property
    def columns(self) -> Tuple[str, ...]:
        return self._columns

    def fetch(self) -> Optional[Row]:
        values = self._next()
        return None if values is None else Row(values, self._columns)

    def fetch_assoc(self) -> Optional[Dict[str, Any]]:
        values = self._next()
        return None if values is None else dict(zip(self._columns, values))

    def fetch_row(self) -> Optional[tuple]:
        values = self._next()
        return None if values is None else tuple(values)

    def fetch_object(self, cls: Optional[type] = None, *args: Any) -> Any:
        """
        Fetch the next row as an object with one attribute per column.

        Without ``cls`` a :class:`types.SimpleNamespace` is returned.
        Otherwise ``cls(*args)`` is created and the columns are set on it.
        """
        row = self.fetch_assoc()
        if row is None:
            return None
        if cls is None:
            return SimpleNamespace(**row)
        obj = cls(*args)
        for name, value in row.items():
            setattr(obj, name, value)
        return obj

    def fetch_all(self) -> List[Row]:
        """Rewind, then return every row."""
        self.rewind()
        rows = [Row(values, self._columns) for values in self._cursor.fetchall()]
        self._index += len(rows)
        return rows

    def rewind(self) -> bool:
        """
        Seek back to the first row.

        Streaming cursors cannot seek; in that case the position is left
        unchanged and False is returned.
        """
        if self._index == 0:
            return True
        if self._backend.seek(self._cursor, 0):
            self._index = 0
            return True
        logger.debug("cursor does not support seeking, staying at row %d", self._index)
        return False

    def field_info(self, offset: int) -> Dict[str, Any]:
        return self._backend.field_info(self._cursor, offset)

    def num_fields(self) -> int:
        return len(self._columns)

    def num_rows(self) -> int:
        return self._cursor.rowcount

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._backend.free(self._cursor)

    def __repr__(self):
        return f"<Result columns={list(self._columns)} rows={self.num_rows()}>"
