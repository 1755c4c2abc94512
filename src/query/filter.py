"""Parameterized WHERE / ORDER BY builder for listing queries.

``SafeQueryFilter`` is an accumulator: every predicate call appends an SQL
fragment that only references named parameters, and ``build()`` freezes the
result into a :class:`QuerySpec` that repositories execute. Column names are
interpolated into the SQL text, so they are checked against a strict
identifier pattern; values never are.

Every parameter is named ``<base>_<n>`` from a monotonic counter, so filtering
the same column twice or extending a query built elsewhere never reuses a name.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Any, Self

from domain.errors import ConfigurationError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
DEFAULT_ALIAS = "entity"
SEARCH_PARAM = "keyword"


class OrderType(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class QueryParam:
    name: str
    value: Any
    # Column the value is compared with; repositories use it to pick the bind type.
    column: str | None = None
    expanding: bool = False


@dataclass(frozen=True)
class OrderClause:
    column: str
    direction: OrderType = OrderType.ASC


@dataclass(frozen=True)
class QuerySpec:
    alias: str
    conditions: tuple[str, ...]
    params: tuple[QueryParam, ...] = ()
    order: OrderClause | None = None
    next_index: int = 0

    @property
    def where_clause(self) -> str:
        return " AND ".join(self.conditions)

    @property
    def parameters(self) -> dict[str, Any]:
        return {param.name: param.value for param in self.params}

    @property
    def order_clause(self) -> str | None:
        if self.order is None:
            return None
        return f"{self.alias}.{self.order.column} {self.order.direction.value.upper()}"


def _check_identifier(name: str, kind: str = "column") -> str:
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.fullmatch(name):
        raise ConfigurationError(f"{name!r} is not a valid {kind} name")
    return name


@dataclass
class SafeQueryFilter:
    alias: str
    allowed_columns: frozenset[str] | None = None
    conditions: list[str] = field(default_factory=list)
    params: list[QueryParam] = field(default_factory=list)
    index: int = 0
    order: OrderClause | None = None

    @classmethod
    def create(
        cls,
        query: QuerySpec | None = None,
        alias: str | None = None,
        allowed_columns: Iterable[str] | None = None,
    ) -> SafeQueryFilter:
        """Start a filter, optionally extending an already built spec.

        A fresh filter always carries ``<alias>.deleted_at IS NULL``. When
        ``query`` is given its conditions, parameters, ordering and counter are
        carried over instead, so further parameters never collide with it.
        """
        allowed = frozenset(_check_identifier(column) for column in allowed_columns) if allowed_columns else None
        if query is None:
            alias = _check_identifier(alias or DEFAULT_ALIAS, "alias")
            return cls(alias=alias, allowed_columns=allowed, conditions=[f"{alias}.deleted_at IS NULL"])

        if alias is not None and alias != query.alias:
            raise ConfigurationError(f"Cannot extend a query on {query.alias!r} with alias {alias!r}")
        return cls(
            alias=query.alias,
            allowed_columns=allowed,
            conditions=list(query.conditions),
            params=list(query.params),
            index=query.next_index,
            order=query.order,
        )

    def _next_name(self, base: str) -> str:
        self.index += 1
        return f"{base}_{self.index}"

    def _add(self, column: str, operator: str, value: Any, *, expanding: bool = False) -> Self:
        _check_identifier(column)
        name = self._next_name(column)
        self.conditions.append(f"{self.alias}.{column} {operator} :{name}")
        self.params.append(QueryParam(name, value, column=column, expanding=expanding))
        return self

    def like(self, column: str, value: str | None) -> Self:
        if value is None:
            return self
        return self._add(column, "LIKE", f"%{value}%")

    def or_like(self, columns: Iterable[str], keyword: str | None) -> Self:
        """One keyword matched against several columns, joined with OR."""
        columns = [_check_identifier(column) for column in columns]
        if keyword is None or not columns:
            return self
        name = self._next_name(SEARCH_PARAM)
        matches = " OR ".join(f"{self.alias}.{column} LIKE :{name}" for column in columns)
        self.conditions.append(f"({matches})")
        self.params.append(QueryParam(name, f"%{keyword}%"))
        return self

    def equal(self, column: str, value: Any) -> Self:
        if value is None:
            return self
        return self._add(column, "=", value)

    def not_equal(self, column: str, value: Any) -> Self:
        if value is None:
            return self
        return self._add(column, "!=", value)

    def in_(self, column: str, values: Iterable[Any] | None) -> Self:
        values = list(values) if values is not None else []
        if not values:
            return self
        return self._add(column, "IN", values, expanding=True)

    def not_in(self, column: str, values: Iterable[Any] | None) -> Self:
        values = list(values) if values is not None else []
        if not values:
            return self
        return self._add(column, "NOT IN", values, expanding=True)

    def gte(self, column: str, value: Any) -> Self:
        if value is None:
            return self
        return self._add(column, ">=", value)

    def lte(self, column: str, value: Any) -> Self:
        if value is None:
            return self
        return self._add(column, "<=", value)

    def order_by(self, column: str | None, direction: OrderType | str = OrderType.ASC) -> Self:
        if not column:
            return self
        _check_identifier(column)
        if self.allowed_columns is not None and column not in self.allowed_columns:
            raise ConfigurationError(f"{column} is not a valid column")
        self.order = OrderClause(column, OrderType(str(direction).lower()))
        return self

    def apply(self, filters: Mapping[str, Any]) -> Self:
        """Convenience dispatch by value shape.

        Strings become partial (LIKE) matches, lists, tuples and sets become IN
        matches and anything else an equality. Enum members always compare by
        equality even when they are string enums. ``None`` values are skipped.
        Use :meth:`equal` directly when a string must match exactly.
        """
        for column, value in filters.items():
            if value is None:
                continue
            if isinstance(value, Enum):
                self.equal(column, value.value)
            elif isinstance(value, str):
                self.like(column, value)
            elif isinstance(value, (list, tuple, set, frozenset)):
                self.in_(column, value)
            else:
                self.equal(column, value)
        return self

    def build(self) -> QuerySpec:
        return QuerySpec(
            alias=self.alias,
            conditions=tuple(self.conditions),
            params=tuple(self.params),
            order=self.order,
            next_index=self.index,
        )


__all__ = ["OrderClause", "OrderType", "QueryParam", "QuerySpec", "SafeQueryFilter"]
