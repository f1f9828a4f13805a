"""
State classifier - scores profiles against a Context and detects label
transitions.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from home_ambient.modules.context import Context
from home_ambient.modules.history import HistoryStore, LabelSample

from .models import (
    Classification,
    ClassifierState,
    Profile,
    Transition,
    TransitionKind,
)

logger = logging.getLogger(__name__)


class StateClassifier:
    """
    Classifies Contexts into labels.

    Responsibilities:
    - Score every profile and pick the best one above the floor
    - Hold the current label (ClassifierState)
    - Emit a Transition only when the label actually changes
    - Record contexts, held labels and transitions in history
    """

    def __init__(
        self,
        profiles: Sequence[Profile],
        history: HistoryStore,
        floor: float = 0.5,
        name: str = "context",
    ) -> None:
        """
        Args:
            profiles: Profiles in declaration order (earlier wins ties)
            history: Where contexts, labels and transitions are recorded
            floor: The best score must be strictly above this to match
            name: Classifier name, used in logs and on transitions
        """
        if not 0.0 <= floor <= 1.0:
            raise ValueError(f"Classification floor must be within [0, 1], got {floor}")
        self._profiles: List[Profile] = list(profiles)
        self._history = history
        self.floor = floor
        self.name = name
        self._state = ClassifierState()

    @property
    def state(self) -> ClassifierState:
        return self._state

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def profiles(self) -> List[Profile]:
        return list(self._profiles)

    def replace_profiles(self, profiles: Sequence[Profile]) -> None:
        """Swap the whole profile set. The held label is kept."""
        self._profiles = list(profiles)
        logger.info(f"Classifier {self.name}: loaded {len(self._profiles)} profiles")

    def score_all(self, ctx: Context) -> Dict[str, float]:
        """Score of every profile, keyed by profile id."""
        return {p.id: p.score(ctx) for p in self._profiles}

    def best_match(self, ctx: Context) -> tuple[Optional[Profile], float]:
        """
        Highest-scoring profile, first in declaration order on ties.

        Returns:
            (profile, score); profile is None if nothing clears the floor
        """
        best: Optional[Profile] = None
        best_score = 0.0
        for profile in self._profiles:
            score = profile.score(ctx)
            if best is None or score > best_score:
                best, best_score = profile, score

        if best is None or best_score <= self.floor:
            return None, best_score
        return best, best_score

    def evaluate(self, ctx: Optional[Context], now: Optional[datetime] = None) -> Classification:
        """
        Classify a context and update the held state.

        Args:
            ctx: The context for this tick
            now: Evaluation time (defaults to ctx.timestamp)

        Returns:
            Classification with the matched label (or None) and any transition
        """
        if ctx is None:
            logger.debug(f"Classifier {self.name}: no context, skipping")
            return Classification.skip("no context")
        if not self._profiles:
            self._history.append_context(ctx)
            return Classification.skip("no profiles")

        if now is None:
            now = ctx.timestamp

        self._history.append_context(ctx)

        scores = self.score_all(ctx)
        profile, score = self.best_match(ctx)
        previous_ctx = self._state.last_context
        self._state.last_context = ctx
        self._state.last_evaluated_at = now

        if profile is None:
            if self._state.current_label is not None:
                self._record_label(ctx, now)
            logger.debug(
                f"Classifier {self.name}: no profile above {self.floor} (best {score:.2f})"
            )
            return Classification(label=None, confidence=score, scores=scores)

        transition = None
        if profile.label != self._state.current_label:
            transition = Transition(
                from_label=self._state.current_label,
                to_label=profile.label,
                kind=self.transition_kind(previous_ctx, ctx),
                confidence=score,
                timestamp=now,
                classifier=self.name,
            )
            self._history.append_transition(transition)
            logger.info(
                f"Classifier {self.name}: {transition.from_label or 'unknown'} -> "
                f"{transition.to_label} ({transition.kind.value}, {round(score * 100)}%)"
            )

        self._state.current_label = profile.label
        self._state.confidence = score
        self._record_label(ctx, now)

        return Classification(
            label=profile.label,
            confidence=score,
            profile_id=profile.id,
            transition=transition,
            scores=scores,
        )

    @staticmethod
    def transition_kind(previous: Optional[Context], current: Context) -> TransitionKind:
        """First coarse field that differs: presence, activity, time of day, else label."""
        if previous is None:
            return TransitionKind.LABEL_CHANGE
        if previous.presence.status != current.presence.status:
            return TransitionKind.PRESENCE_CHANGE
        if previous.activity_level.band != current.activity_level.band:
            return TransitionKind.ACTIVITY_CHANGE
        if previous.time_of_day != current.time_of_day:
            return TransitionKind.TIME_CHANGE
        return TransitionKind.LABEL_CHANGE

    def _record_label(self, ctx: Context, now: datetime) -> None:
        assert self._state.current_label is not None
        self._history.append_label(
            LabelSample(
                label=self._state.current_label,
                time_bucket=ctx.time_of_day.value,
                confidence=self._state.confidence,
                timestamp=now,
            )
        )
