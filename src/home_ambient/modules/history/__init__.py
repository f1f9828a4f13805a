"""
Bounded history and pattern mining.
"""

from .models import LabelSample, BehaviorPattern
from .store import HistoryStore
from .miner import PatternMiner

__all__ = [
    "LabelSample",
    "BehaviorPattern",
    "HistoryStore",
    "PatternMiner",
]
