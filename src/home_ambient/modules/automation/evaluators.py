"""
Condition evaluators for the automation engine.

Each evaluator checks whether a specific condition type is met against the
current Context (and, for label conditions, the trigger being handled).
"""

import logging
from datetime import datetime
from typing import Optional

from home_ambient.modules.context import ActivityBand, Context
from home_ambient.modules.history import HistoryStore

from .models import (
    AwayOrInactiveCondition,
    ConditionConfig,
    DayOfWeekCondition,
    LabelCondition,
    PresenceCondition,
    TimeRangeCondition,
    Trigger,
    UnknownCondition,
    UserActiveCondition,
)

logger = logging.getLogger(__name__)


class ConditionEvaluator:
    """
    Evaluates conditions for automation rules.

    Uses the history store to judge how long the home has been away or idle.
    """

    def __init__(self, history: Optional[HistoryStore] = None) -> None:
        self._history = history

    def evaluate(
        self,
        condition: ConditionConfig,
        ctx: Context,
        trigger: Optional[Trigger] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Evaluate a condition.

        Args:
            condition: The condition to evaluate
            ctx: Current context
            trigger: Trigger being handled (None for scheduled evaluation)
            now: Evaluation time (defaults to ctx.timestamp)

        Returns:
            True if condition is met, False otherwise
        """
        if now is None:
            now = ctx.timestamp

        if isinstance(condition, PresenceCondition):
            return ctx.presence.status.value == condition.status
        elif isinstance(condition, UserActiveCondition):
            is_active = ctx.activity_level.band != ActivityBand.IDLE
            return is_active == condition.active
        elif isinstance(condition, TimeRangeCondition):
            return self._check_time_range(condition, ctx.hour)
        elif isinstance(condition, DayOfWeekCondition):
            return ctx.weekday in condition.days
        elif isinstance(condition, AwayOrInactiveCondition):
            return self._check_away_or_inactive(condition, ctx, now)
        elif isinstance(condition, LabelCondition):
            return self._check_label(condition, trigger)
        elif isinstance(condition, UnknownCondition):
            logger.warning(f"Unknown condition type '{condition.type}', treating as satisfied")
            return True
        else:
            logger.warning(f"Unknown condition: {condition!r}, treating as satisfied")
            return True

    def evaluate_all(
        self,
        conditions: list[ConditionConfig],
        ctx: Context,
        trigger: Optional[Trigger] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Evaluate all conditions (AND logic), stopping at the first failure.

        Returns:
            True if ALL conditions are met
        """
        for condition in conditions:
            if not self.evaluate(condition, ctx, trigger, now):
                logger.debug(f"Condition not met: {condition}")
                return False
        return True

    # =========================================================================
    # Condition Implementations
    # =========================================================================

    @staticmethod
    def _check_time_range(condition: TimeRangeCondition, hour: int) -> bool:
        """Check hour within [start, end]; spans midnight when start > end."""
        if condition.start <= condition.end:
            return condition.start <= hour <= condition.end
        return hour >= condition.start or hour <= condition.end

    def _check_away_or_inactive(
        self, condition: AwayOrInactiveCondition, ctx: Context, now: datetime
    ) -> bool:
        """
        Check the home has been away or idle for at least duration_ms.

        Walks context history newest first to find when the current away/idle
        streak began. Without history only the current context is known.
        """
        if not ctx.is_away_or_inactive:
            return False
        if condition.duration_ms <= 0:
            return True

        streak_start = ctx.timestamp
        if self._history is not None:
            for past in reversed(self._history.get_contexts()):
                if past.timestamp > ctx.timestamp:
                    continue
                if not past.is_away_or_inactive:
                    break
                streak_start = past.timestamp

        elapsed_ms = (now - streak_start).total_seconds() * 1000
        return elapsed_ms >= condition.duration_ms

    @staticmethod
    def _check_label(condition: LabelCondition, trigger: Optional[Trigger]) -> bool:
        """Check the trigger entered the given classifier label."""
        if trigger is None:
            return False
        if condition.classifier and trigger.payload.get("classifier") != condition.classifier:
            return False
        return trigger.payload.get("to_label") == condition.label
