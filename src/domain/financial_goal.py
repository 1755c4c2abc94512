from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .base_types import AuditableModel, UserId, audit_fields, utc_now
from .errors import ERR_GOAL_NOT_FOUND, ErrorLayer, NotFound
from .validation import check, non_null, parse, parse_patch, unwrap


class FinancialGoalCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    target_date: date


class FinancialGoalUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    target_date: date | None = None


class FinancialGoal(AuditableModel):
    user_id: UserId
    name: str
    target_date: date
    active: bool = False

    @classmethod
    def create(cls, data: Mapping[str, Any], user_id: UUID, created_by_id: UUID) -> Self:
        parsed = unwrap(parse(FinancialGoalCreate, data), remarks="Financial goal creation failed")
        return cls.model_validate(
            {**parsed.model_dump(), **audit_fields(created_by_id), "user_id": user_id, "active": False}
        )

    def update(self, patch: Mapping[str, Any], updated_by_id: UUID) -> Self:
        result = check(parse_patch(FinancialGoalUpdate, patch), non_null("name", "target_date"))
        parsed = unwrap(result, remarks="Financial goal update failed")
        changes = parsed.model_dump(include=parsed.model_fields_set)
        return self._evolve(**changes, updated_at=utc_now(), updated_by_id=updated_by_id)

    def set_active(self, active: bool, updated_by_id: UUID) -> Self:
        return self._evolve(active=active, updated_at=utc_now(), updated_by_id=updated_by_id)

    def delete(self, deleted_by_id: UUID) -> Self:
        return self._evolve(deleted_at=utc_now(), deleted_by_id=deleted_by_id)


def plan_goal_activation(goals: Iterable[FinancialGoal], goal_id: UUID, updated_by_id: UUID) -> list[FinancialGoal]:
    """Return the goals that change when ``goal_id`` becomes the single active goal.

    The result deactivates every other active goal and activates the chosen one.
    Persisting it is only correct when all changes are written in one storage
    transaction; this function does no locking of its own.
    """
    live_goals = [goal for goal in goals if goal.is_active()]
    chosen = next((goal for goal in live_goals if goal.id == goal_id), None)
    if chosen is None:
        raise NotFound(ERR_GOAL_NOT_FOUND, layer=ErrorLayer.DOMAIN)

    changes = [goal.set_active(False, updated_by_id) for goal in live_goals if goal.active and goal.id != goal_id]
    if not chosen.active:
        changes.append(chosen.set_active(True, updated_by_id))
    return changes


__all__ = ["FinancialGoal", "FinancialGoalCreate", "FinancialGoalUpdate", "plan_goal_activation"]
