"""
orm/exceptions.py
-----------------
Errors raised by the query builder and the model layer.
Errors coming from psycopg2 are never wrapped; they reach the caller unchanged.
"""


class ORMError(Exception):
    """Base class for every error raised by the orm package."""


class UnsupportedOperationError(ORMError):
    """Render was called with an unset or unknown operation."""

    def __init__(self, operation):
        self.operation = operation
        super().__init__(
            f"Unknown operation: [{operation}]. "
            "Operation can be select, insert, update or delete."
        )


class ArityMismatchError(ORMError):
    """Columns and values passed for one statement differ in length."""

    def __init__(self, columns, values):
        self.columns = list(columns)
        self.values = list(values)
        super().__init__(
            f"Got {len(self.columns)} column(s) {self.columns} "
            f"but {len(self.values)} value(s)."
        )


class PlaceholderCollisionError(ORMError):
    """One placeholder was bound to two different values in the same statement."""

    def __init__(self, placeholder: str, old, new):
        self.placeholder = placeholder
        self.old = old
        self.new = new
        super().__init__(
            f"Placeholder {placeholder} is already bound to {old!r}, refusing to rebind it to {new!r}."
        )
