from __future__ import annotations

from typing import Any, Protocol, TypeVar
from uuid import UUID

from query.filter import QuerySpec
from query.pagination import PaginatedResponse

E = TypeVar("E")


class Repository(Protocol[E]):
    """Persistence port used by the application services.

    ``remove`` is a soft delete and every read hides soft-deleted rows.
    """

    def add(self, entity: E) -> E: ...

    def update(self, entity_id: UUID, entity: E) -> E: ...

    def remove(self, entity_id: UUID, deleted_by_id: UUID) -> bool: ...

    def list(self, query: QuerySpec | None = None) -> list[E]: ...

    def paginated_list(
        self, query: QuerySpec | None = None, *, page: int = 1, limit: int = 10
    ) -> PaginatedResponse[E]: ...

    def find_by_id(self, entity_id: UUID) -> E | None: ...

    def find_one(self, **conditions: Any) -> E | None: ...

    def exists(self, entity_id: UUID) -> bool: ...


__all__ = ["Repository"]
