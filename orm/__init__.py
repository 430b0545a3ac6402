"""
orm/ - Model Layer
==================
Fluent query builder and the Model base class built on top of it.
Models execute through a db.Database handle bound with `Model.bind(db)`.
"""

from orm.exceptions import (
    ArityMismatchError,
    ORMError,
    PlaceholderCollisionError,
    UnsupportedOperationError,
)
from orm.filters import ByColumnEquals, ByColumnOp, ByDefaultColumn
from orm.model import Model
from orm.query_builder import QueryBuilder

__all__ = [
    "Model",
    "QueryBuilder",
    "ByDefaultColumn",
    "ByColumnEquals",
    "ByColumnOp",
    "ORMError",
    "UnsupportedOperationError",
    "ArityMismatchError",
    "PlaceholderCollisionError",
]
