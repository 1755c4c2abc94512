from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any, Mapping, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .base_types import AssetId, AuditableModel, UserId, audit_fields, utc_now
from .validation import check, non_null, parse, parse_patch, unwrap


class AssetType(StrEnum):
    SAVING = "saving"
    BALANCER = "balancer"
    RISK_TAKER = "risk_taker"
    UTIL = "util"
    OTHER = "other"


class AssetStatus(StrEnum):
    DONE = "done"
    IN_PROGRESS = "inprogress"
    NOT_STARTED = "not_started"
    UNDEFINED = "undefined"


class AssetTargetCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    target_value: Decimal = Field(ge=0)


class AssetTargetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    target_value: Decimal | None = Field(default=None, ge=0)


class AssetCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    current_value: Decimal = Field(default=Decimal(0), ge=0)
    asset_type: AssetType
    location: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    target: AssetTargetCreate | None = None


class AssetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    current_value: Decimal | None = Field(default=None, ge=0)
    asset_type: AssetType | None = None
    location: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    target: AssetTargetUpdate | None = None


class AssetTarget(AuditableModel):
    """Numeric savings target owned by exactly one asset."""

    asset_id: AssetId
    target_value: Decimal

    @classmethod
    def create(cls, data: Mapping[str, Any], asset_id: UUID, created_by_id: UUID) -> Self:
        parsed = unwrap(parse(AssetTargetCreate, data), remarks="Asset target creation failed")
        return cls.model_validate({**parsed.model_dump(), **audit_fields(created_by_id), "asset_id": asset_id})

    def update(self, patch: Mapping[str, Any], updated_by_id: UUID) -> Self:
        result = check(parse_patch(AssetTargetUpdate, patch), non_null("target_value"))
        parsed = unwrap(result, remarks="Asset target update failed")
        changes = parsed.model_dump(include=parsed.model_fields_set)
        return self._evolve(**changes, updated_at=utc_now(), updated_by_id=updated_by_id)


class Asset(AuditableModel):
    """A savings bucket with an optional target value."""

    user_id: UserId
    name: str
    current_value: Decimal = Decimal(0)
    asset_type: AssetType
    location: str | None = None
    description: str | None = None
    target: AssetTarget | None = None

    @classmethod
    def create(cls, data: Mapping[str, Any], user_id: UUID, created_by_id: UUID) -> Self:
        parsed = unwrap(parse(AssetCreate, data), remarks="Asset creation failed")
        fields = audit_fields(created_by_id)

        target = None
        if parsed.target is not None:
            target = AssetTarget.create(parsed.target.model_dump(), fields["id"], created_by_id)

        return cls.model_validate(
            {**parsed.model_dump(exclude={"target"}), **fields, "user_id": user_id, "target": target}
        )

    def update(self, patch: Mapping[str, Any], updated_by_id: UUID) -> Self:
        """Merge a partial patch.

        The ``target`` key drives three behaviours: omitted keeps the current
        target, ``None`` clears it, and a populated mapping updates the existing
        target in place (keeping its id and audit trail) or creates one.
        """
        result = check(parse_patch(AssetUpdate, patch), non_null("name", "current_value", "asset_type"))
        parsed = unwrap(result, remarks="Asset update failed")
        changes = parsed.model_dump(include=parsed.model_fields_set - {"target"})

        target = self.target
        if "target" in parsed.model_fields_set:
            if parsed.target is None:
                target = None
            else:
                target_patch = parsed.target.model_dump(include=parsed.target.model_fields_set)
                if self.target is None:
                    target = AssetTarget.create(target_patch, self.id, updated_by_id)
                else:
                    target = self.target.update(target_patch, updated_by_id)

        return self._evolve(**changes, target=target, updated_at=utc_now(), updated_by_id=updated_by_id)

    def delete(self, deleted_by_id: UUID) -> Self:
        # The target keeps its own lifecycle and is not deleted with the asset.
        return self._evolve(deleted_at=utc_now(), deleted_by_id=deleted_by_id)

    @property
    def target_value(self) -> Decimal | None:
        return self.target.target_value if self.target is not None else None

    @property
    def progress(self) -> Decimal | None:
        """Normalized progress in [0, 1]; None without a usable (non-zero) target."""
        target_value = self.target_value
        if not target_value:
            return None
        return min(max(self.current_value / target_value, Decimal(0)), Decimal(1))

    @property
    def status(self) -> AssetStatus:
        target_value = self.target_value
        if target_value is None:
            return AssetStatus.UNDEFINED
        if target_value == 0:
            return AssetStatus.NOT_STARTED

        progress = self.progress or Decimal(0)
        return AssetStatus.DONE if progress >= 1 else AssetStatus.IN_PROGRESS


__all__ = [
    "Asset",
    "AssetCreate",
    "AssetStatus",
    "AssetTarget",
    "AssetTargetCreate",
    "AssetTargetUpdate",
    "AssetType",
    "AssetUpdate",
]
