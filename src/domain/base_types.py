from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, NewType, Self
from uuid import UUID, uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict

UserId = NewType("UserId", UUID)
PortfolioId = NewType("PortfolioId", UUID)
TransactionId = NewType("TransactionId", UUID)
HoldingId = NewType("HoldingId", UUID)
AssetId = NewType("AssetId", UUID)
AssetTargetId = NewType("AssetTargetId", UUID)
GoalId = NewType("GoalId", UUID)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back; naive timestamps are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def new_id() -> UUID:
    return uuid4()


class AuditableModel(BaseModel):
    """Base for every persisted entity.

    Entities are frozen: factories build a new instance for every change and
    soft deletion only stamps ``deleted_at`` / ``deleted_by_id``.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    created_at: UtcDatetime
    created_by_id: UUID
    updated_at: UtcDatetime
    updated_by_id: UUID
    deleted_at: UtcDatetime | None = None
    deleted_by_id: UUID | None = None

    def is_active(self) -> bool:
        return self.deleted_at is None

    @classmethod
    def from_persistence(cls, raw: Any) -> Self:
        """Rebuild an entity from a stored row or mapping without running factory rules."""
        if isinstance(raw, dict):
            return cls.model_validate(raw)
        return cls.model_validate(raw, from_attributes=True)

    def _evolve(self, **changes: Any) -> Self:
        return type(self).model_validate({**self.model_dump(), **changes})


def audit_fields(created_by_id: UUID) -> dict[str, Any]:
    now = utc_now()
    return {
        "id": new_id(),
        "created_at": now,
        "created_by_id": created_by_id,
        "updated_at": now,
        "updated_by_id": created_by_id,
    }
