"""
Shaping row data for the Coda row endpoints.
--------------------------------------------

In Pycoda, a row is simply a ``dict`` of column -> value, where columns
may be given as ids (``'c-tuVwxYz'``) or names (``'Name'``). Insert functions
will accept either a single row or a list of rows, and will figure out
which is which. Coda wants "cells" instead::

    {'Name': 'Bob', 'Age': 42}
    --> {'cells': [{'column': 'Name', 'value': 'Bob'},
                   {'column': 'Age', 'value': 42}]}
"""

from collections.abc import Mapping
from typing import Any

Row = Mapping[str, Any]
RowData = Row|list[Row] #: a single row, or a batch of rows

_CONTAINERS = (Mapping, list, tuple)

def _first(data) -> Any:
    if isinstance(data, Mapping):
        return next(iter(data.values()))
    return data[0]

def count_depth(data) -> int:
    """Return the nesting depth of ``data``, following the first item.

    ``{'a': 1}`` is 1 deep, ``[{'a': 1}]`` is 2 deep, and so on.
    An empty container is 1 deep.
    """
    if not data:
        return 1
    first = _first(data)
    if isinstance(first, _CONTAINERS):
        return count_depth(first) + 1
    return 1

def is_batch(data: RowData) -> bool:
    """``True`` if ``data`` is a list of rows, ``False`` if a single row.

    A mapping is always a single row (cell values may be lists themselves);
    an empty list is taken as a single empty row.
    """
    if isinstance(data, Mapping):
        return False
    return count_depth(data) >= 2

def make_cells(row: Row) -> list[dict]:
    return [{'column': col, 'value': val} for col, val in row.items()]

def make_insert_payload(row_data: RowData,
                        key_columns: list[str]|None = None,
                        disable_parsing: bool = False) -> dict:
    """Compose the json body for inserting/upserting rows.

    ``key_columns``: if rows with matching values in these columns are
    found, Coda will update them instead of inserting new rows.
    ``disable_parsing``: if set, Coda will store values as they are.
    """
    if is_batch(row_data):
        rows = list(row_data) # type: ignore
    elif row_data:
        rows = [row_data]
    else:
        rows = [{}]
    return {'rows': [{'cells': make_cells(r)} for r in rows],
            'keyColumns': list(key_columns or []),
            'disableParsing': bool(disable_parsing)}

def make_update_payload(row: Row) -> dict:
    """Compose the json body for updating a single row."""
    return {'row': {'cells': make_cells(row)}}

def make_query_param(query: Row|str) -> str:
    """Compose the row filter as Coda wants it, ie. ``column:"value"``.

    Only the first item of the mapping is considered, since Coda only
    supports filtering on one column. A string will pass unchanged.
    """
    if isinstance(query, str):
        return query
    col, val = next(iter(query.items()))
    return f'{col}:"{val}"'
