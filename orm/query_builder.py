"""
orm/query_builder.py
--------------------
Fluent builder that accumulates clause fragments and renders one of the
SELECT / INSERT / UPDATE / DELETE statement shapes.

The builder knows nothing about models. Every setter returns the builder so
calls can be chained; `render()` is terminal and resets the clause state.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from orm.exceptions import ArityMismatchError, UnsupportedOperationError
from utils.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


@dataclass
class Condition:
    """One `column operator value` term, joined to the previous one by `chain`."""
    column: str
    operator: str
    value: Any
    chain: str = ""

    def __str__(self) -> str:
        return f"{self.column}{self.operator}{self.value}"


class QueryBuilder:
    """
    Accumulates the parts of a single statement.

    Conditions are kept as a list of Condition records. A condition added
    while the chain register is empty replaces the list; one added after
    `set_chain()` is appended with that operator and the register is cleared.
    """

    MAX_LIMIT = 1000000000

    def __init__(self):
        self.operation: Optional[str] = None
        self.table: Optional[str] = None
        self._reset()

    def _reset(self) -> None:
        """Restore every clause to its default. Operation and table are kept."""
        self.columns: list = ["*"]
        self.joins: list[str] = []
        self.conditions: list[Condition] = []
        self.group_by = ""
        self.order_by = ""
        self.offset = 0
        self.limit = self.MAX_LIMIT
        self.values: list = []
        self.chain = ""

    # ── Setters ───────────────────────────────────────────

    def set_operation(self, operation: str) -> "QueryBuilder":
        self.operation = operation.lower()
        return self

    def set_table(self, table: str) -> "QueryBuilder":
        self.table = table
        return self

    def set_columns(self, columns: Sequence) -> "QueryBuilder":
        self.columns = list(columns)
        return self

    def get_columns(self) -> list:
        return self.columns

    def add_join(self, join: str) -> "QueryBuilder":
        self.joins.append(join)
        return self

    def set_chain(self, chain: str) -> "QueryBuilder":
        self.chain = chain
        return self

    def set_group_by(self, columns: Sequence[str]) -> "QueryBuilder":
        self.group_by = "GROUP BY " + ",".join(columns)
        return self

    def set_order_by(self, columns: Sequence[str]) -> "QueryBuilder":
        self.order_by = "ORDER BY " + ",".join(columns)
        return self

    def set_limit(self, limit: int) -> "QueryBuilder":
        self.limit = int(limit)
        return self

    def set_offset(self, offset: int) -> "QueryBuilder":
        self.offset = int(offset)
        return self

    def set_values(self, values: Sequence) -> "QueryBuilder":
        self.values = list(values)
        return self

    def add_condition(self, column: str, operator_or_value, value=_MISSING) -> "QueryBuilder":
        """
        Add a `column operator value` term.

        Args:
            column: Column name.
            operator_or_value: The value when called with two arguments
                (operator defaults to '='), otherwise the operator.
            value: The value for the three-argument form.
        """
        if value is _MISSING:
            condition = Condition(column, "=", operator_or_value)
        else:
            condition = Condition(column, operator_or_value, value)

        if self.chain == "":
            self.conditions = [condition]
        else:
            condition.chain = self.chain
            self.conditions.append(condition)
            self.chain = ""
        return self

    @property
    def has_conditions(self) -> bool:
        return bool(self.conditions)

    # ── Rendering ─────────────────────────────────────────

    def _render_conditions(self) -> str:
        parts = []
        for condition in self.conditions:
            if parts:
                parts.append(f" {condition.chain} {condition}")
            else:
                parts.append(str(condition))
        return "".join(parts)

    def render(self) -> str:
        """
        Render the statement for the current operation and reset the clauses.

        Raises:
            UnsupportedOperationError: Operation unset or unknown.
            ArityMismatchError: UPDATE columns and values differ in length.
        """
        if self.operation == "select":
            query = self._make_select()
        elif self.operation == "insert":
            query = self._make_insert()
        elif self.operation == "update":
            query = self._make_update()
        elif self.operation == "delete":
            query = self._make_delete()
        else:
            raise UnsupportedOperationError(self.operation)

        self._reset()
        logger.debug(f"Rendered {self.operation.upper()} query: {query}")
        return query

    def _make_select(self) -> str:
        where = ""
        having = ""
        limit = ""
        conditions = self._render_conditions()

        if conditions:
            if self.group_by:
                having = " HAVING " + conditions
            else:
                where = " WHERE " + conditions

        if self.offset != 0 or self.limit != self.MAX_LIMIT:
            limit = f" LIMIT {self.limit} OFFSET {self.offset}"

        query = "SELECT " + ",".join(map(str, self.columns)) + " FROM " + self.table + " "
        query += " ".join(self.joins) + where + " " + self.group_by + having + " "
        query += self.order_by + limit
        return query

    def _make_insert(self) -> str:
        query = "INSERT INTO " + self.table + " "
        query += "(" + ",".join(self.columns) + ") values "
        query += "(" + ",".join(map(str, self.values)) + ")"
        return query

    def _make_update(self) -> str:
        if len(self.columns) != len(self.values):
            raise ArityMismatchError(self.columns, self.values)

        assignments = ",".join(
            f"{column}={value}" for column, value in zip(self.columns, self.values)
        )
        conditions = self._render_conditions()
        where = " WHERE " + conditions if conditions else ""
        return "UPDATE " + self.table + " SET " + assignments + where

    def _make_delete(self) -> str:
        conditions = self._render_conditions()
        where = " WHERE " + conditions if conditions else ""
        return "DELETE FROM " + self.table + where
