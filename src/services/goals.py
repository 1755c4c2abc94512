from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID

from db.repositories import FinancialGoalRepository
from domain.errors import ERR_GOAL_ACCESS_DENIED, ERR_GOAL_NOT_FOUND, ErrorLayer, NotFound
from domain.financial_goal import FinancialGoal
from domain.ownership import verify_ownership
from query.filter import SafeQueryFilter

logger = logging.getLogger(__name__)


class GoalService:
    def __init__(self, goals: FinancialGoalRepository) -> None:
        self._goals = goals

    def create(self, user_id: UUID, data: Mapping[str, Any]) -> FinancialGoal:
        return self._goals.add(FinancialGoal.create(data, user_id, user_id))

    def get(self, goal_id: UUID, user_id: UUID) -> FinancialGoal:
        goal = self._goals.find_by_id(goal_id)
        if goal is None:
            raise NotFound(ERR_GOAL_NOT_FOUND, layer=ErrorLayer.APPLICATION)
        verify_ownership(goal.user_id, user_id, message=ERR_GOAL_ACCESS_DENIED)
        return goal

    def update(self, goal_id: UUID, user_id: UUID, patch: Mapping[str, Any]) -> FinancialGoal:
        goal = self.get(goal_id, user_id)
        return self._goals.update(goal_id, goal.update(patch, user_id))

    def delete(self, goal_id: UUID, user_id: UUID) -> FinancialGoal:
        goal = self.get(goal_id, user_id)
        return self._goals.update(goal_id, goal.delete(user_id))

    def activate(self, goal_id: UUID, user_id: UUID) -> FinancialGoal:
        self.get(goal_id, user_id)
        goal = self._goals.activate(goal_id, user_id)
        logger.info("Activated goal %s for user %s", goal_id, user_id)
        return goal

    def active_goal(self, user_id: UUID) -> FinancialGoal | None:
        return self._goals.find_one(user_id=user_id, active=True)

    def list(self, user_id: UUID) -> list[FinancialGoal]:
        builder = SafeQueryFilter.create(alias=self._goals.alias).equal("user_id", user_id)
        return self._goals.list(builder.order_by("target_date").build())


__all__ = ["GoalService"]
