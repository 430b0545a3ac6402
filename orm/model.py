"""
orm/model.py
------------
Base entity class with finder, filter and mutation operations over one table.

Subclass it and bind a Database once:

    class User(Model):
        relations = {
            "posts": lambda user: user.has_many(Post),
            "roles": lambda user: user.belongs_to_many(Role),
        }

    Model.bind(db)

    User.store({"name": "Ana", "age": 31})
    user = User.find(1)
    adults = User.where("age", ">", 17).and_("active", True).order_by("name").get()
    User.where("name", "Ana").update("age").with_(32)

Filter values never end up in the SQL text: each filter adds a `:column`
placeholder to the statement and the value to `filters_data`, and assigned
attributes go to `input_data` the same way.
"""

import re
from typing import Any, Callable, Optional

from config import STRICT_PLACEHOLDERS
from db.connection import Database
from orm.exceptions import ArityMismatchError, ORMError, PlaceholderCollisionError
from orm.filters import ByColumnEquals, ByColumnOp, ByDefaultColumn, to_filter
from orm.query_builder import QueryBuilder
from utils.logger import get_logger

logger = get_logger(__name__)


def table_name_for(model_cls: type) -> str:
    """
    Derive a table name from a class name: split words at capitals with
    underscores, lowercase, and pluralize with a trailing 's'.
    `UserRole` -> `user_roles`.
    """
    with_underscores = re.sub(r"([a-z])([A-Z])", r"\1_\2", model_cls.__name__)
    return with_underscores.lower() + "s"


class Model:
    """
    One instance backs one query chain or one fetched row.

    Class attributes a subclass may override:
        table: Table name; inferred from the class name when None.
        default_filter: Column used by one-argument filters like `find(3)`.
        primary_key: Primary key column.
        relations: Attribute name -> callable(instance) returning a related
            model with its condition already seeded; used by get_attribute().
        strict_placeholders: Raise on a placeholder bound twice with
            different values instead of keeping the last one.
    """

    table: Optional[str] = None
    default_filter: str = "id"
    primary_key: str = "id"
    relations: dict[str, Callable[["Model"], "Model"]] = {}
    strict_placeholders: bool = STRICT_PLACEHOLDERS
    database: Optional[Database] = None

    def __init__(self, database: Optional[Database] = None):
        self.query_builder = QueryBuilder()
        self._db = database if database is not None else type(self).database
        if not self.table:
            self.table = table_name_for(type(self))

        self.filters_data: dict[str, Any] = {}
        self.input_data: dict[str, Any] = {}
        self._data: dict[str, Any] = {}
        self._id = None
        self._exists = False
        self._expects_one = False
        self._update_columns: Optional[list[str]] = None

    @classmethod
    def bind(cls, database: Database) -> None:
        """Bind a data-access handle to this class and its subclasses."""
        cls.database = database

    @property
    def db(self) -> Database:
        if self._db is None:
            raise RuntimeError(
                f"No database bound to {type(self).__name__}. Call Model.bind(db) first."
            )
        return self._db

    @property
    def id(self):
        return self._id

    @property
    def data(self) -> dict[str, Any]:
        """Snapshot of the last fetched row."""
        return dict(self._data)

    @property
    def persisted(self) -> bool:
        """True once a row was fetched into this instance; save() then updates."""
        return self._exists

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.primary_key}={self._id!r}>"

    # ── Attributes ────────────────────────────────────────

    def set_attribute(self, column: str, value) -> None:
        """Stage a column value for the next save()."""
        self.input_data[f":{column}"] = value

    def get_attribute(self, name: str):
        """
        Read a column of the fetched row. If the row has no such column and a
        relation of that name is registered, the related result is fetched.
        """
        if name in self._data:
            return self._data[name]
        resolver = self.relations.get(name)
        if resolver is not None:
            return resolver(self).get()
        return None

    def _set_input_data(self, data: dict) -> "Model":
        for column, value in data.items():
            self.set_attribute(column, value)
        return self

    # ── Placeholder bookkeeping ───────────────────────────

    def _bind(self, params: dict, placeholder: str, value) -> None:
        if placeholder in params and params[placeholder] != value:
            if self.strict_placeholders:
                raise PlaceholderCollisionError(placeholder, params[placeholder], value)
            logger.warning(
                f"Placeholder {placeholder} rebound from {params[placeholder]!r} "
                f"to {value!r} on {self.table}; the last value is used."
            )
        params[placeholder] = value

    def _take_filters(self) -> dict[str, Any]:
        """Hand the filter values over to an execute call and start afresh."""
        params, self.filters_data = self.filters_data, {}
        return params

    def _add_filter(self, *args) -> "Model":
        condition = to_filter(*args)
        if isinstance(condition, ByDefaultColumn):
            column = self.default_filter
        else:
            column = condition.column
        placeholder = f":{column}"

        self._bind(self.filters_data, placeholder, condition.value)
        if isinstance(condition, ByColumnOp):
            self.query_builder.add_condition(column, condition.operator, placeholder)
        else:
            self.query_builder.add_condition(column, placeholder)
        return self

    def _bootstrap(self, row: dict) -> "Model":
        self._data = dict(row)
        self._exists = True
        self._id = self._data.get(self.primary_key)
        return self

    # ── Static finders and mutators ───────────────────────

    @classmethod
    def all(cls) -> list[dict]:
        """Fetch every row of the table."""
        model = cls()
        model.query_builder.set_operation("select").set_table(model.table)
        return model.db.execute_select(model.query_builder.render(), model._take_filters())

    @classmethod
    def where(cls, *args) -> "Model":
        """
        Start a filtered query. Further filters chain with and_() / or_().

        Args:
            *args: (value), (column, value) or (column, operator, value).
        """
        model = cls()
        model._add_filter(*args)
        return model

    @classmethod
    def find(cls, *args) -> Optional["Model"]:
        """Fetch the first row matching the filter as a model, or None."""
        model = cls.where(*args)
        rows = model.get()
        return model._bootstrap(rows[0]) if rows else None

    @classmethod
    def count(cls, *args) -> int:
        """Number of rows matching the optional filter."""
        model = cls.where(*args) if args else cls()
        model.query_builder.set_operation("select").set_table(model.table).set_columns(
            ["count(*) as num_rows"]
        )
        sql = model.query_builder.render()
        rows = model.db.execute_select(sql, model._take_filters())
        return int(rows[0]["num_rows"])

    @classmethod
    def exists(cls, *args) -> bool:
        """Whether any row matches the optional filter."""
        return bool(cls.count(*args))

    @classmethod
    def store(cls, data: dict):
        """Insert a row and return its generated primary key."""
        return cls()._set_input_data(data).save()

    @classmethod
    def empty(cls) -> int:
        """Delete every row and truncate the table. Use with caution."""
        model = cls()
        affected = model.destroy()
        model.db.execute_update(f"TRUNCATE {model.table}")
        logger.info(f"Emptied table {model.table} ({affected} rows)")
        return affected

    # ── Query refinement ──────────────────────────────────

    def and_(self, *args) -> "Model":
        self.query_builder.set_chain("AND")
        return self._add_filter(*args)

    def or_(self, *args) -> "Model":
        self.query_builder.set_chain("OR")
        return self._add_filter(*args)

    def skip(self, offset: int) -> "Model":
        self.query_builder.set_offset(offset)
        return self

    def take(self, limit: int) -> "Model":
        self.query_builder.set_limit(limit)
        return self

    def order_by(self, *columns: str) -> "Model":
        """ex. ("id"), ("id desc"), ("age", "name")"""
        self.query_builder.set_order_by(columns)
        return self

    def group_by(self, *columns: str) -> "Model":
        self.query_builder.set_group_by(columns)
        return self

    # ── Terminal operations ───────────────────────────────

    def _include_primary_key(self, columns: list) -> list:
        if self.primary_key in columns:
            return columns
        columns = columns + [self.primary_key]
        if len(columns) == 1:
            return ["*"]
        return columns

    def get(self, *columns: str):
        """
        Fetch the rows matching the accumulated filters.

        The primary key is always part of the projection. When this instance
        came from has_one() or belongs_to(), the first row is returned as a
        model (or None); otherwise the list of rows is returned.
        """
        columns = self._include_primary_key(list(columns))
        self.query_builder.set_operation("select").set_columns(columns).set_table(self.table)
        sql = self.query_builder.render()
        rows = self.db.execute_select(sql, self._take_filters())

        if self._expects_one:
            self._expects_one = False
            return self._bootstrap(rows[0]) if rows else None
        return rows

    def first(self) -> Optional["Model"]:
        """Fetch the first matching row as a model, or None."""
        self.query_builder.set_limit(1)
        if self._expects_one:
            return self.get()
        rows = self.get()
        return self._bootstrap(rows[0]) if rows else None

    def save(self):
        """
        Insert the staged attributes, or update them when this instance holds
        a fetched row (or was marked by set()).

        Returns:
            The new primary key for an insert, the affected row count for an update.
        """
        placeholders = list(self.input_data)
        self.query_builder.set_operation("update" if self._exists else "insert").set_table(
            self.table
        ).set_columns([p[1:] for p in placeholders]).set_values(placeholders)

        if not self._exists:
            new_id = self.db.execute_insert(self.query_builder.render(), dict(self.input_data))
            logger.info(f"Inserted into {self.table}: {self.primary_key}={new_id}")
            return new_id

        # Pending filters alone may scope the update; otherwise the primary key
        # always does, and an unknown id (None) matches no row.
        pk_placeholder = f":{self.primary_key}"
        scope_by_pk = self._id is not None or not self.query_builder.has_conditions
        if scope_by_pk:
            if self.query_builder.has_conditions:
                self.query_builder.set_chain("AND")
            self.query_builder.add_condition(self.primary_key, pk_placeholder)

        sql = self.query_builder.render()
        params = self._take_filters()
        if scope_by_pk:
            self._bind(params, pk_placeholder, self._id)
        for placeholder, value in self.input_data.items():
            self._bind(params, placeholder, value)

        affected = self.db.execute_update(sql, params)
        logger.info(f"Updated {affected} row(s) in {self.table}")
        return affected

    def set(self, *args) -> int:
        """
        Update columns of the matching rows.

        Args:
            *args: (column, value) or ({column: value, ...}).

        The instance is always treated as existing, so this performs an
        UPDATE even on an instance that was never fetched. Without pending
        filters or a fetched id it is scoped by `<pk>=NULL` and changes nothing.

        Known limitation: a column that is both filtered and set shares one
        placeholder, so `where("name", "Ana").set("name", "Bo")` binds `Bo` in
        the WHERE clause as well (last value wins, a warning is logged;
        strict_placeholders raises instead).
        """
        if len(args) == 2:
            data = {args[0]: args[1]}
        elif len(args) == 1:
            data = dict(args[0])
        else:
            raise TypeError(f"set() takes (column, value) or (mapping), got {len(args)} arguments.")

        self._set_input_data(data)
        self._exists = True
        return self.save()

    def update(self, *columns) -> "Model":
        """Choose the columns for a following with_(); ("a", "b") or (["a", "b"])."""
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            columns = columns[0]
        self._update_columns = list(columns)
        return self

    def with_(self, *values) -> int:
        """
        Give values to the columns chosen by update(), positionally.

        Raises:
            ArityMismatchError: Value count differs from the update() column count.
        """
        if self._update_columns is None:
            raise ORMError("with_() must follow update().")
        if len(values) == 1 and isinstance(values[0], (list, tuple)):
            values = values[0]
        if len(values) != len(self._update_columns):
            raise ArityMismatchError(self._update_columns, values)

        columns, self._update_columns = self._update_columns, None
        return self.set(dict(zip(columns, values)))

    def destroy(self) -> int:
        """Delete the rows matching the accumulated filters; returns affected rows."""
        self.query_builder.set_operation("delete").set_table(self.table)
        sql = self.query_builder.render()
        affected = self.db.execute_delete(sql, self._take_filters())
        logger.info(f"Deleted {affected} row(s) from {self.table}")
        return affected

    # ── Relationships ─────────────────────────────────────

    def has_many(self, related_cls: type, foreign_key: Optional[str] = None) -> "Model":
        """
        Rows of `related_cls` whose `foreign_key` (default `<singular table>_id`)
        references this row. Call get() on the result.
        """
        related = related_cls(self._db)
        foreign_key = foreign_key or self.table[:-1] + "_id"
        related._add_filter(ByColumnEquals(foreign_key, self._id))
        return related

    def has_one(self, related_cls: type, foreign_key: Optional[str] = None) -> "Model":
        related = self.has_many(related_cls, foreign_key)
        related._expects_one = True
        return related

    def belongs_to(
        self, owner_cls: type, foreign_key: Optional[str] = None, referenced_key: str = "id"
    ) -> "Model":
        """The `owner_cls` row this row references through `foreign_key`."""
        owner = owner_cls(self._db)
        foreign_key = foreign_key or owner.table[:-1] + "_id"
        owner._add_filter(ByColumnEquals(referenced_key, self.get_attribute(foreign_key)))
        owner._expects_one = True
        return owner

    def belongs_to_many(
        self,
        related_cls: type,
        table: Optional[str] = None,
        self_column: Optional[str] = None,
        related_column: Optional[str] = None,
    ) -> "Model":
        """
        Rows of `related_cls` linked to this row through a pivot table. The
        pivot defaults to both table names joined with '_' in alphabetical order.
        """
        related = related_cls(self._db)
        related_table = related.table
        self_column = self_column or self.table[:-1] + "_id"
        related_column = related_column or related_table[:-1] + "_id"

        if table is None:
            if self.table < related_table:
                table = f"{self.table}_{related_table}"
            else:
                table = f"{related_table}_{self.table}"

        related.table = table
        related._add_filter(ByColumnEquals(self_column, self._id))
        related.query_builder.add_join(
            f"JOIN {related_table} on {related_table}.{related.primary_key}={related_column}"
        )
        return related
