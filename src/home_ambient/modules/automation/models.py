"""
Data models for the automation engine.

Defines rules, triggers, conditions, actions and execution records.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

WILDCARD_ZONE = "*"


# =============================================================================
# Enums
# =============================================================================


class ConditionType(Enum):
    """Types of conditions that must be met for actions to execute."""

    PRESENCE = "presence"  # Presence status equals a value
    USER_ACTIVE = "user_active"  # Activity band is not idle
    TIME_RANGE = "time_range"  # Hour within [start, end]
    DAY_OF_WEEK = "day_of_week"  # Weekday in a set
    USER_AWAY_OR_INACTIVE = "user_away_or_inactive"  # Away or idle for a duration
    LABEL = "label"  # Trigger entered a classifier label


class ActionType(Enum):
    """Types of actions that can be executed."""

    DEVICE_SET = "device_set"  # Write a device capability
    SCENE_ACTIVATE = "scene_activate"  # Activate a scene
    NOTIFY = "notify"  # Send a notification
    HVAC_SET = "hvac_set"  # Set climate mode / target temperature


class OutcomeStatus(Enum):
    """Overall result of dispatching a rule's actions."""

    SUCCESS = "success"  # Every attempted action succeeded
    PARTIAL = "partial"  # Some failed, some succeeded
    ERROR = "error"  # Every attempted action failed


# Names used by older rule definitions
ACTION_ALIASES = {
    "setDeviceState": ActionType.DEVICE_SET.value,
    "triggerScene": ActionType.SCENE_ACTIVATE.value,
    "sendNotification": ActionType.NOTIFY.value,
    "setHVAC": ActionType.HVAC_SET.value,
}


# =============================================================================
# Trigger
# =============================================================================


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Trigger:
    """An event that may cause rules to run (geofence crossing, transition, ...)."""

    type: str  # e.g., "arrive", "presence_change"
    zone: str  # e.g., "home"
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utc_now)

    @property
    def user(self) -> Optional[str]:
        """User the trigger is about, if the payload names one."""
        value = self.payload.get("user_id") or self.payload.get("userId") or self.payload.get("user")
        return str(value) if value else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "zone": self.zone,
            "payload": dict(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }


# =============================================================================
# Condition Configs
# =============================================================================


@dataclass(frozen=True)
class PresenceCondition:
    """Check presence status (home, away, unknown)."""

    status: str

    @property
    def condition_type(self) -> str:
        return ConditionType.PRESENCE.value


@dataclass(frozen=True)
class UserActiveCondition:
    """
    Check that someone is active (activity band is not idle).

    active=False is a real requirement (the home must be idle), not a
    disabled check. Rules that only want to skip the check should omit the
    condition.
    """

    active: bool = True  # False inverts: require idle

    @property
    def condition_type(self) -> str:
        return ConditionType.USER_ACTIVE.value


@dataclass(frozen=True)
class TimeRangeCondition:
    """
    Check hour of day within [start, end], inclusive.

    Spans midnight when start > end (e.g., 22 to 6).
    """

    start: int = 0
    end: int = 23

    @property
    def condition_type(self) -> str:
        return ConditionType.TIME_RANGE.value


@dataclass(frozen=True)
class DayOfWeekCondition:
    """
    Check that the current weekday (Monday = 0) is in the allowed set.

    The "dayOfWeek" dict spelling counts from Sunday = 0 and is converted
    on parse.
    """

    days: FrozenSet[int]

    @property
    def condition_type(self) -> str:
        return ConditionType.DAY_OF_WEEK.value


@dataclass(frozen=True)
class AwayOrInactiveCondition:
    """Check that the home has been away or idle for at least duration_ms."""

    duration_ms: int = 0

    @property
    def condition_type(self) -> str:
        return ConditionType.USER_AWAY_OR_INACTIVE.value


@dataclass(frozen=True)
class LabelCondition:
    """
    Check that the trigger entered a classifier label (payload "to_label").

    With classifier set, the transition must also come from that classifier.
    """

    label: str
    classifier: Optional[str] = None

    @property
    def condition_type(self) -> str:
        return ConditionType.LABEL.value


@dataclass(frozen=True)
class UnknownCondition:
    """A condition type this engine does not implement. Treated as satisfied."""

    type: str
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def condition_type(self) -> str:
        return self.type


ConditionConfig = (
    PresenceCondition
    | UserActiveCondition
    | TimeRangeCondition
    | DayOfWeekCondition
    | AwayOrInactiveCondition
    | LabelCondition
    | UnknownCondition
)


# =============================================================================
# Action Configs
# =============================================================================


@dataclass(frozen=True)
class DeviceSetAction:
    """Write a device capability (e.g., onoff=False, dim=0.4)."""

    device_id: str
    capability: str
    value: Any

    @property
    def action_type(self) -> str:
        return ActionType.DEVICE_SET.value


@dataclass(frozen=True)
class SceneActivateAction:
    """Activate a scene by id."""

    scene_id: str

    @property
    def action_type(self) -> str:
        return ActionType.SCENE_ACTIVATE.value


@dataclass(frozen=True)
class NotifyAction:
    """
    Send a notification.

    message and title support {zone}, {user} and trigger payload placeholders.
    """

    message: str
    title: str = "Home"

    @property
    def action_type(self) -> str:
        return ActionType.NOTIFY.value


@dataclass(frozen=True)
class HvacSetAction:
    """Set climate mode and, optionally, target temperature."""

    mode: str  # e.g., "comfort", "eco"
    temperature: Optional[float] = None

    @property
    def action_type(self) -> str:
        return ActionType.HVAC_SET.value


@dataclass(frozen=True)
class UnknownAction:
    """An action type this engine does not implement. Skipped with a warning."""

    type: str
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def action_type(self) -> str:
        return self.type


ActionConfig = (
    DeviceSetAction | SceneActivateAction | NotifyAction | HvacSetAction | UnknownAction
)


# =============================================================================
# Rule
# =============================================================================


def new_rule_id() -> str:
    return f"rule_{uuid.uuid4().hex[:12]}"


@dataclass
class Rule:
    """
    A complete automation rule.

    Consists of:
    - id: Unique identifier
    - enabled: Whether rule is active
    - zone: Zone the rule applies to ("*" = every zone)
    - trigger_types: Trigger types that activate the rule
    - conditions: All must be true for actions to run
    - actions: What to execute, in order
    - cooldown_ms: Minimum time between executions

    last_executed_at and execution_count are stamped after every execution.
    """

    id: str
    name: str
    zone: str
    trigger_types: List[str]
    actions: List[ActionConfig]
    conditions: List[ConditionConfig] = field(default_factory=list)
    enabled: bool = True
    cooldown_ms: int = 0
    last_executed_at: Optional[datetime] = None
    execution_count: int = 0
    description: str = ""
    preset: bool = False
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must be >= 0, got {self.cooldown_ms}")

    def applies_to_zone(self, zone: str) -> bool:
        return self.zone == WILDCARD_ZONE or self.zone == zone

    def cooldown_elapsed(self, now: datetime) -> bool:
        """True if the rule has never run or cooldown_ms has passed since it last ran."""
        if self.last_executed_at is None or self.cooldown_ms == 0:
            return True
        elapsed_ms = (now - self.last_executed_at).total_seconds() * 1000
        return elapsed_ms >= self.cooldown_ms

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for storage/transport."""
        return {
            "id": self.id,
            "name": self.name,
            "zone": self.zone,
            "triggers": list(self.trigger_types),
            "conditions": [serialize_condition(c) for c in self.conditions],
            "actions": [serialize_action(a) for a in self.actions],
            "enabled": self.enabled,
            "cooldown_ms": self.cooldown_ms,
            "last_executed_at": (
                self.last_executed_at.isoformat() if self.last_executed_at else None
            ),
            "execution_count": self.execution_count,
            "description": self.description,
            "preset": self.preset,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        """
        Deserialize from dict.

        Accepts a single "trigger" string or a "triggers" list.

        Raises:
            KeyError, ValueError, TypeError: If the dict is malformed
        """
        triggers = data.get("triggers")
        if triggers is None:
            single = data.get("trigger")
            triggers = [single] if single else []
        if isinstance(triggers, str):
            triggers = [triggers]

        zone = data["zone"]
        last_executed = data.get("last_executed_at")
        created = data.get("created_at")

        return cls(
            id=data.get("id") or new_rule_id(),
            name=data.get("name") or f"{'/'.join(triggers)} at {zone}",
            zone=zone,
            trigger_types=list(triggers),
            conditions=[parse_condition(c) for c in data.get("conditions") or []],
            actions=[parse_action(a) for a in data["actions"]],
            enabled=data.get("enabled", True) is not False,
            cooldown_ms=int(data.get("cooldown_ms", 0)),
            last_executed_at=datetime.fromisoformat(last_executed) if last_executed else None,
            execution_count=int(data.get("execution_count", 0)),
            description=data.get("description", ""),
            preset=bool(data.get("preset", False)),
            created_at=datetime.fromisoformat(created) if created else _utc_now(),
        )


def serialize_condition(c: ConditionConfig) -> Dict[str, Any]:
    """Serialize condition config."""
    if isinstance(c, PresenceCondition):
        return {"type": "presence", "value": c.status}
    elif isinstance(c, UserActiveCondition):
        return {"type": "user_active", "value": c.active}
    elif isinstance(c, TimeRangeCondition):
        return {"type": "time_range", "start": c.start, "end": c.end}
    elif isinstance(c, DayOfWeekCondition):
        return {"type": "day_of_week", "days": sorted(c.days)}
    elif isinstance(c, AwayOrInactiveCondition):
        return {"type": "user_away_or_inactive", "duration": c.duration_ms}
    elif isinstance(c, LabelCondition):
        result = {"type": "label", "value": c.label}
        if c.classifier is not None:
            result["classifier"] = c.classifier
        return result
    elif isinstance(c, UnknownCondition):
        return {**dict(c.params), "type": c.type}
    return {}


def parse_condition(data: Dict[str, Any]) -> ConditionConfig:
    """Parse condition config from dict. Unknown types are kept, not rejected."""
    condition_type = data["type"]

    if condition_type == "presence":
        return PresenceCondition(status=data["value"])
    elif condition_type == "user_active":
        return UserActiveCondition(active=data.get("value", True))
    elif condition_type in ("time_range", "timeRange"):
        return TimeRangeCondition(start=int(data.get("start", 0)), end=int(data.get("end", 23)))
    elif condition_type == "day_of_week":
        return DayOfWeekCondition(days=frozenset(int(d) for d in data["days"]))
    elif condition_type == "dayOfWeek":
        # Sunday = 0 in this spelling
        return DayOfWeekCondition(days=frozenset((int(d) - 1) % 7 for d in data["days"]))
    elif condition_type == "user_away_or_inactive":
        return AwayOrInactiveCondition(duration_ms=int(data.get("duration", 0)))
    elif condition_type == "label":
        return LabelCondition(label=data["value"], classifier=data.get("classifier"))
    else:
        params = {k: v for k, v in data.items() if k != "type"}
        return UnknownCondition(type=condition_type, params=params)


def serialize_action(a: ActionConfig) -> Dict[str, Any]:
    """Serialize action config."""
    if isinstance(a, DeviceSetAction):
        return {
            "type": "device_set",
            "device_id": a.device_id,
            "capability": a.capability,
            "value": a.value,
        }
    elif isinstance(a, SceneActivateAction):
        return {"type": "scene_activate", "scene_id": a.scene_id}
    elif isinstance(a, NotifyAction):
        return {"type": "notify", "message": a.message, "title": a.title}
    elif isinstance(a, HvacSetAction):
        result: Dict[str, Any] = {"type": "hvac_set", "mode": a.mode}
        if a.temperature is not None:
            result["temperature"] = a.temperature
        return result
    elif isinstance(a, UnknownAction):
        return {**dict(a.params), "type": a.type}
    return {}


def parse_action(data: Dict[str, Any]) -> ActionConfig:
    """Parse action config from dict. Unknown types are kept, not rejected."""
    action_type = ACTION_ALIASES.get(data["type"], data["type"])

    if action_type == "device_set":
        return DeviceSetAction(
            device_id=data.get("device_id") or data["deviceId"],
            capability=data["capability"],
            value=data.get("value"),
        )
    elif action_type == "scene_activate":
        return SceneActivateAction(scene_id=data.get("scene_id") or data["sceneId"])
    elif action_type == "notify":
        return NotifyAction(message=data.get("message", ""), title=data.get("title", "Home"))
    elif action_type == "hvac_set":
        return HvacSetAction(mode=data["mode"], temperature=data.get("temperature"))
    else:
        params = {k: v for k, v in data.items() if k != "type"}
        return UnknownAction(type=data["type"], params=params)


# =============================================================================
# Execution Records
# =============================================================================


@dataclass(frozen=True)
class ActionResult:
    """Result of one action within a dispatch."""

    index: int
    action_type: str
    success: bool
    error: Optional[str] = None
    skipped: bool = False
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "action_type": self.action_type,
            "success": self.success,
            "error": self.error,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of dispatching one rule's action list."""

    status: OutcomeStatus
    results: tuple[ActionResult, ...] = ()

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success and not r.skipped)

    @classmethod
    def from_results(cls, results: List[ActionResult]) -> "ExecutionOutcome":
        """Success if nothing failed, error if everything attempted failed, else partial."""
        attempted = [r for r in results if not r.skipped]
        failures = sum(1 for r in attempted if not r.success)
        if failures == 0:
            status = OutcomeStatus.SUCCESS
        elif failures == len(attempted):
            status = OutcomeStatus.ERROR
        else:
            status = OutcomeStatus.PARTIAL
        return cls(status=status, results=tuple(results))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class ExecutionRecord:
    """Record of a rule execution (for history/debugging)."""

    rule_id: str
    rule_name: str
    trigger: Optional[Dict[str, Any]]  # Snapshot; None for scheduled evaluations
    outcome: ExecutionOutcome
    timestamp: datetime
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.outcome.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "trigger": self.trigger,
            "outcome": self.outcome.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class MatchedRule:
    """A rule selected for execution, with the trigger that selected it (if any)."""

    rule: Rule
    trigger: Optional[Trigger] = None


@dataclass
class ExecutionSummary:
    """
    Result of handling a trigger or a scheduled evaluation.

    executed counts rules whose outcome was success or partial; errors
    counts rules whose outcome was partial or error.
    """

    matched: int = 0
    executed: int = 0
    errors: int = 0
    records: List[ExecutionRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"matched": self.matched, "executed": self.executed, "errors": self.errors}


@dataclass(frozen=True)
class EngineStatistics:
    """Rule counts and execution totals."""

    total_rules: int
    active_rules: int
    total_executions: int
    successful_executions: int
    failed_executions: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_rules": self.total_rules,
            "active_rules": self.active_rules,
            "total_executions": self.total_executions,
            "successful_executions": self.successful_executions,
            "failed_executions": self.failed_executions,
        }
