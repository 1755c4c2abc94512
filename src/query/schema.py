from __future__ import annotations

from typing import Any, Iterable, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, create_model, field_validator

from .filter import OrderType, QuerySpec, SafeQueryFilter

BASE_QUERY_FIELDS = frozenset({"key", "limit", "page", "order_by", "order_type"})


class BaseQuery(BaseModel):
    """Listing parameters shared by every entity query."""

    model_config = ConfigDict(extra="forbid")

    key: str | None = None
    limit: int | None = Field(default=None, ge=1)
    page: int | None = Field(default=None, ge=1)
    order_by: str | None = None
    order_type: OrderType | None = None

    @field_validator("key", mode="before")
    @classmethod
    def _strip_key(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("order_type", mode="before")
    @classmethod
    def _lower_order_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def filters(self) -> dict[str, Any]:
        """Entity filter fields that were given a value."""
        return {
            name: value
            for name, value in self.model_dump(exclude=set(BASE_QUERY_FIELDS)).items()
            if value is not None
        }


def create_entity_query_schema(
    name: str,
    allowed_keys: Iterable[str],
    filter_fields: Mapping[str, Any] | None = None,
) -> type[BaseQuery]:
    """Build a query model for one entity.

    ``order_by`` only accepts ``allowed_keys`` and every entry of
    ``filter_fields`` (field name -> type) becomes an optional filter.
    """
    keys = tuple(allowed_keys)
    if not keys:
        msg = "At least one allowed key must be provided"
        raise ValueError(msg)

    fields: dict[str, Any] = {"order_by": (Optional[Literal[keys]], None)}
    for field_name, annotation in (filter_fields or {}).items():
        if field_name in BASE_QUERY_FIELDS:
            msg = f"{field_name} is reserved for listing parameters"
            raise ValueError(msg)
        fields[field_name] = (Optional[annotation], None)

    return create_model(name, __base__=BaseQuery, **fields)


def build_query_spec(
    query: BaseQuery,
    *,
    alias: str,
    search_columns: Iterable[str] = (),
    allowed_columns: Iterable[str] | None = None,
    base: QuerySpec | None = None,
    **fixed: Any,
) -> QuerySpec:
    """Turn a parsed listing query into a :class:`QuerySpec`.

    ``fixed`` holds exact-match conditions the caller enforces (an owner or a
    parent id); they are applied before the user-supplied filters.
    """
    builder = SafeQueryFilter.create(base, alias=None if base else alias, allowed_columns=allowed_columns)
    for column, value in fixed.items():
        builder.equal(column, value)
    return (
        builder.or_like(search_columns, query.key)
        .apply(query.filters())
        .order_by(query.order_by, query.order_type or OrderType.ASC)
        .build()
    )


__all__ = ["BaseQuery", "build_query_spec", "create_entity_query_schema"]
