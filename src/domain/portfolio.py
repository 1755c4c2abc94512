from __future__ import annotations

from typing import Any, Mapping, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .base_types import AuditableModel, UserId, audit_fields, utc_now
from .validation import check, non_null, parse, parse_patch, unwrap


class PortfolioCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    is_default: bool = False


class PortfolioUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    is_default: bool | None = None


class Portfolio(AuditableModel):
    user_id: UserId
    name: str
    description: str | None = None
    is_default: bool = False

    @classmethod
    def create(cls, raw: Mapping[str, Any], user_id: UUID, created_by_id: UUID) -> Self:
        data = unwrap(parse(PortfolioCreate, raw), remarks="Portfolio creation failed")
        return cls.model_validate({**data.model_dump(), **audit_fields(created_by_id), "user_id": user_id})

    @classmethod
    def update(cls, existing: Portfolio, patch: Mapping[str, Any], updated_by_id: UUID) -> Self:
        result = check(parse_patch(PortfolioUpdate, patch), non_null("name", "is_default"))
        data = unwrap(result, remarks="Portfolio update failed")
        changes = data.model_dump(include=data.model_fields_set)
        return cls.model_validate(
            {**existing.model_dump(), **changes, "updated_at": utc_now(), "updated_by_id": updated_by_id}
        )

    @classmethod
    def mark_deleted(cls, existing: Portfolio, deleted_by_id: UUID) -> Self:
        return cls.model_validate({**existing.model_dump(), "deleted_at": utc_now(), "deleted_by_id": deleted_by_id})


__all__ = ["Portfolio", "PortfolioCreate", "PortfolioUpdate"]
