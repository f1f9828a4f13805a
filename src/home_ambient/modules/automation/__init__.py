"""
Rule-driven automation.

Matches enabled rules against triggers (geofence crossings, classifier
transitions, custom events) and dispatches their ordered actions through
injected capability providers.

Features:
- Rules: trigger types + zone scope ("*" = any) + conditions + actions + cooldown
- Presence, activity, time-range, day-of-week, away/idle and label conditions
- Device, scene, notification and climate actions with per-action isolation
- Scheduled conditions-only evaluation
- Execution history and statistics

Architecture:
    Trigger --> RuleEngine.match --> ActionDispatcher --> providers
                     |                      |
                     v                      v
              ConditionEvaluator     ExecutionRecord --> HistoryStore
"""

from .models import (
    # Enums
    ConditionType,
    ActionType,
    OutcomeStatus,
    ACTION_ALIASES,
    WILDCARD_ZONE,
    # Trigger
    Trigger,
    # Conditions
    PresenceCondition,
    UserActiveCondition,
    TimeRangeCondition,
    DayOfWeekCondition,
    AwayOrInactiveCondition,
    LabelCondition,
    UnknownCondition,
    ConditionConfig,
    # Actions
    DeviceSetAction,
    SceneActivateAction,
    NotifyAction,
    HvacSetAction,
    UnknownAction,
    ActionConfig,
    # Rule
    Rule,
    new_rule_id,
    parse_condition,
    parse_action,
    serialize_condition,
    serialize_action,
    # Results
    ActionResult,
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionSummary,
    MatchedRule,
    EngineStatistics,
)
from .adapter import (
    DeviceController,
    SceneActivator,
    Notifier,
    ClimateController,
    MockDeviceController,
    MockSceneActivator,
    MockNotifier,
    MockClimateController,
)
from .evaluators import ConditionEvaluator
from .dispatcher import ActionDispatcher, render_template
from .engine import RuleEngine
from .presets import (
    ARRIVE_HOME_ID,
    LEAVE_HOME_ID,
    arrive_home,
    leave_home,
    ambient_lighting,
    energy_saving_when_away,
    default_presets,
)

__all__ = [
    # Enums
    "ConditionType",
    "ActionType",
    "OutcomeStatus",
    "ACTION_ALIASES",
    "WILDCARD_ZONE",
    # Trigger
    "Trigger",
    # Conditions
    "PresenceCondition",
    "UserActiveCondition",
    "TimeRangeCondition",
    "DayOfWeekCondition",
    "AwayOrInactiveCondition",
    "LabelCondition",
    "UnknownCondition",
    "ConditionConfig",
    # Actions
    "DeviceSetAction",
    "SceneActivateAction",
    "NotifyAction",
    "HvacSetAction",
    "UnknownAction",
    "ActionConfig",
    # Rule
    "Rule",
    "new_rule_id",
    "parse_condition",
    "parse_action",
    "serialize_condition",
    "serialize_action",
    # Results
    "ActionResult",
    "ExecutionOutcome",
    "ExecutionRecord",
    "ExecutionSummary",
    "MatchedRule",
    "EngineStatistics",
    # Providers
    "DeviceController",
    "SceneActivator",
    "Notifier",
    "ClimateController",
    "MockDeviceController",
    "MockSceneActivator",
    "MockNotifier",
    "MockClimateController",
    # Engine
    "ConditionEvaluator",
    "ActionDispatcher",
    "render_template",
    "RuleEngine",
    # Presets
    "ARRIVE_HOME_ID",
    "LEAVE_HOME_ID",
    "arrive_home",
    "leave_home",
    "ambient_lighting",
    "energy_saving_when_away",
    "default_presets",
]
