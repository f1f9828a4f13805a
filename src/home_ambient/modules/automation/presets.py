"""
Automation presets - ready-made rule templates.

Geofence presets (arrive/leave home) are seeded at start-up. The others are
templates callers can add explicitly.
"""

from typing import List

from .models import (
    AwayOrInactiveCondition,
    DeviceSetAction,
    HvacSetAction,
    NotifyAction,
    PresenceCondition,
    Rule,
    SceneActivateAction,
    TimeRangeCondition,
)

ARRIVE_HOME_ID = "preset_arrive_home"
LEAVE_HOME_ID = "preset_leave_home"


def arrive_home(zone: str = "home", *, enabled: bool = True) -> Rule:
    """
    Disarm security, welcome scene, comfort climate, then notify.

    Order matters: security is disarmed before the welcome scene runs.
    """
    return Rule(
        id=ARRIVE_HOME_ID,
        name="Arrive Home",
        zone=zone,
        trigger_types=["arrive"],
        actions=[
            DeviceSetAction(device_id="security_panel", capability="alarm_armed", value=False),
            SceneActivateAction(scene_id="welcome_home"),
            HvacSetAction(mode="comfort", temperature=22),
            NotifyAction(message="Welcome home! Security disarmed, lights on."),
        ],
        enabled=enabled,
        preset=True,
    )


def leave_home(zone: str = "home", *, enabled: bool = True) -> Rule:
    """Arm security, goodbye scene, eco climate, then notify."""
    return Rule(
        id=LEAVE_HOME_ID,
        name="Leave Home",
        zone=zone,
        trigger_types=["depart"],
        actions=[
            DeviceSetAction(device_id="security_panel", capability="alarm_armed", value=True),
            SceneActivateAction(scene_id="goodbye"),
            HvacSetAction(mode="eco", temperature=18),
            NotifyAction(message="Goodbye! Security armed, eco mode activated."),
        ],
        enabled=enabled,
        preset=True,
    )


def ambient_lighting(
    rule_id: str = "preset_ambient_lighting",
    *,
    zone: str = "home",
    scene_id: str = "evening_ambience",
    start_hour: int = 17,
    end_hour: int = 22,
    cooldown_ms: int = 4 * 60 * 60 * 1000,
    enabled: bool = True,
) -> Rule:
    """
    Activate an evening scene when the time of day changes while someone is home.

    Example:
        engine.add_rule(ambient_lighting(scene_id="cozy", start_hour=18))
    """
    return Rule(
        id=rule_id,
        name="Ambient Lighting",
        zone=zone,
        trigger_types=["time_change"],
        conditions=[
            PresenceCondition(status="home"),
            TimeRangeCondition(start=start_hour, end=end_hour),
        ],
        actions=[SceneActivateAction(scene_id=scene_id)],
        cooldown_ms=cooldown_ms,
        enabled=enabled,
    )


def energy_saving_when_away(
    rule_id: str = "preset_energy_saving",
    *,
    zone: str = "home",
    away_minutes: int = 30,
    cooldown_ms: int = 5 * 60 * 1000,
    enabled: bool = True,
) -> Rule:
    """
    Switch climate to eco once the home has been away or idle for a while.

    Has a standing condition, so it also runs on the scheduled
    conditions-only pass.
    """
    return Rule(
        id=rule_id,
        name="Energy Saving When Away",
        zone=zone,
        trigger_types=["presence_change", "activity_change"],
        conditions=[AwayOrInactiveCondition(duration_ms=away_minutes * 60 * 1000)],
        actions=[HvacSetAction(mode="eco")],
        cooldown_ms=cooldown_ms,
        enabled=enabled,
    )


def default_presets(zone: str = "home") -> List[Rule]:
    """Presets seeded when the engine starts."""
    return [arrive_home(zone), leave_home(zone)]
