"""
Pattern miner - finds which labels recur in which time-of-day buckets.

Mined patterns are written to the history's pattern store and are never
turned into rules automatically.
"""

import logging
from collections import Counter
from datetime import datetime, UTC
from typing import List, Optional

from .models import BehaviorPattern
from .store import HistoryStore

logger = logging.getLogger(__name__)


class PatternMiner:
    """Groups label samples by (label, time bucket) and counts them."""

    def __init__(self, min_samples: int = 20, min_confidence: float = 0.0) -> None:
        """
        Args:
            min_samples: Label samples required before anything is mined
            min_confidence: Patterns below this frequency/sample_size are dropped
        """
        if min_samples < 1:
            raise ValueError("min_samples must be at least 1")
        self.min_samples = min_samples
        self.min_confidence = min_confidence

    def mine(self, history: HistoryStore, now: Optional[datetime] = None) -> List[BehaviorPattern]:
        """
        Mine patterns from the label history and store them.

        Args:
            history: History to read label samples from and write patterns to
            now: Discovery timestamp (for testing)

        Returns:
            Patterns found in this pass, most frequent first
        """
        if now is None:
            now = datetime.now(UTC)

        samples = history.get_labels()
        if len(samples) < self.min_samples:
            logger.debug(
                f"Skipping pattern mining: {len(samples)}/{self.min_samples} samples"
            )
            return []

        counts = Counter((s.label, s.time_bucket) for s in samples)
        total = len(samples)

        patterns = []
        for (label, bucket), frequency in counts.most_common():
            pattern = BehaviorPattern(
                label=label,
                time_bucket=bucket,
                frequency=frequency,
                sample_size=total,
                discovered_at=now,
            )
            if pattern.confidence < self.min_confidence:
                continue
            patterns.append(pattern)

        new_count = sum(1 for p in patterns if history.put_pattern(p))
        logger.info(
            f"Mined {len(patterns)} patterns from {total} samples ({new_count} new)"
        )
        return patterns
