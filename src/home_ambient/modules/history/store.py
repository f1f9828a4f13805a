"""
Bounded, memory-resident history.

Every buffer has a fixed capacity; appending beyond it evicts the oldest
entry. Accessors return copies, never the live buffers.
"""

import logging
from collections import OrderedDict, deque
from typing import TYPE_CHECKING, Deque, Dict, List, Optional

from .models import BehaviorPattern, LabelSample

if TYPE_CHECKING:
    from home_ambient.modules.context import Context
    from home_ambient.modules.classifier.models import Transition
    from home_ambient.modules.automation.models import ExecutionRecord

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    FIFO ring buffers for contexts, labels, transitions and rule executions,
    plus a keyed pattern store with the same eviction policy.
    """

    DEFAULT_CAPACITY = 100

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        pattern_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity < 1 or pattern_capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self.pattern_capacity = pattern_capacity

        self._contexts: Deque["Context"] = deque(maxlen=capacity)
        self._labels: Deque[LabelSample] = deque(maxlen=capacity)
        self._transitions: Deque["Transition"] = deque(maxlen=capacity)
        self._executions: Deque["ExecutionRecord"] = deque(maxlen=capacity)
        self._patterns: "OrderedDict[str, BehaviorPattern]" = OrderedDict()

    # =========================================================================
    # Appends
    # =========================================================================

    def append_context(self, ctx: "Context") -> None:
        self._contexts.append(ctx)

    def append_label(self, sample: LabelSample) -> None:
        self._labels.append(sample)

    def append_transition(self, transition: "Transition") -> None:
        self._transitions.append(transition)

    def append_execution(self, record: "ExecutionRecord") -> None:
        self._executions.append(record)

    def put_pattern(self, pattern: BehaviorPattern) -> bool:
        """
        Insert or refresh a pattern.

        Refreshing keeps the pattern's original position in the eviction order.

        Returns:
            True if the pattern id was not stored before
        """
        is_new = pattern.id not in self._patterns
        self._patterns[pattern.id] = pattern
        while len(self._patterns) > self.pattern_capacity:
            evicted, _ = self._patterns.popitem(last=False)
            logger.debug(f"Evicted pattern {evicted}")
        return is_new

    # =========================================================================
    # Queries (oldest first)
    # =========================================================================

    def get_contexts(self, limit: Optional[int] = None) -> List["Context"]:
        return self._tail(self._contexts, limit)

    def get_labels(self, limit: Optional[int] = None) -> List[LabelSample]:
        return self._tail(self._labels, limit)

    def get_transitions(self, limit: Optional[int] = None) -> List["Transition"]:
        return self._tail(self._transitions, limit)

    def get_executions(self, limit: Optional[int] = None) -> List["ExecutionRecord"]:
        return self._tail(self._executions, limit)

    def get_patterns(self) -> List[BehaviorPattern]:
        return list(self._patterns.values())

    def get_pattern(self, pattern_id: str) -> Optional[BehaviorPattern]:
        return self._patterns.get(pattern_id)

    @property
    def latest_context(self) -> Optional["Context"]:
        return self._contexts[-1] if self._contexts else None

    def sizes(self) -> Dict[str, int]:
        """Current length of every buffer."""
        return {
            "contexts": len(self._contexts),
            "labels": len(self._labels),
            "transitions": len(self._transitions),
            "executions": len(self._executions),
            "patterns": len(self._patterns),
        }

    def clear(self) -> None:
        self._contexts.clear()
        self._labels.clear()
        self._transitions.clear()
        self._executions.clear()
        self._patterns.clear()

    @staticmethod
    def _tail(buffer: Deque, limit: Optional[int]) -> list:
        items = list(buffer)
        if limit is not None:
            return items[-limit:] if limit > 0 else []
        return items
