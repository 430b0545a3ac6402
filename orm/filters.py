"""
orm/filters.py
--------------
The three shapes a filter can take:

    User.find(3)                  -> ByDefaultColumn(3)
    User.where("name", "Ana")     -> ByColumnEquals("name", "Ana")
    User.where("age", ">", 25)    -> ByColumnOp("age", ">", 25)
"""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class ByDefaultColumn:
    """Equality on the model's `default_filter` column."""
    value: Any


@dataclass(frozen=True)
class ByColumnEquals:
    """Equality on an explicit column."""
    column: str
    value: Any


@dataclass(frozen=True)
class ByColumnOp:
    """Explicit column, operator and value."""
    column: str
    operator: str
    value: Any


Filter = Union[ByDefaultColumn, ByColumnEquals, ByColumnOp]


def to_filter(*args) -> Filter:
    """
    Build a filter from positional call arguments.

    Args:
        *args: (value), (column, value), (column, operator, value),
            or a single ready-made filter.

    Raises:
        TypeError: For any other number of arguments.
    """
    if len(args) == 1:
        if isinstance(args[0], (ByDefaultColumn, ByColumnEquals, ByColumnOp)):
            return args[0]
        return ByDefaultColumn(args[0])
    if len(args) == 2:
        return ByColumnEquals(args[0], args[1])
    if len(args) == 3:
        return ByColumnOp(args[0], args[1], args[2])
    raise TypeError(f"A filter takes 1 to 3 arguments, got {len(args)}.")
