"""Injection-safe filtering, sorting and pagination for listing queries."""

from .filter import OrderClause, OrderType, QueryParam, QuerySpec, SafeQueryFilter
from .pagination import PaginatedResponse, paginate
from .schema import BaseQuery, build_query_spec, create_entity_query_schema

__all__ = [
    "BaseQuery",
    "OrderClause",
    "OrderType",
    "PaginatedResponse",
    "QueryParam",
    "QuerySpec",
    "SafeQueryFilter",
    "build_query_spec",
    "create_entity_query_schema",
    "paginate",
]
