"""Tests for automation presets."""

from datetime import datetime, timedelta, UTC

import pytest

from home_ambient.modules.automation import (
    ARRIVE_HOME_ID,
    LEAVE_HOME_ID,
    ActionDispatcher,
    AwayOrInactiveCondition,
    DeviceSetAction,
    HvacSetAction,
    MockClimateController,
    MockDeviceController,
    MockNotifier,
    MockSceneActivator,
    NotifyAction,
    PresenceCondition,
    RuleEngine,
    SceneActivateAction,
    TimeRangeCondition,
    Trigger,
    ambient_lighting,
    arrive_home,
    default_presets,
    energy_saving_when_away,
    leave_home,
)
from home_ambient.modules.context import ActivityLevel, Context, Presence, PresenceStatus
from home_ambient.modules.history import HistoryStore

T0 = datetime(2025, 1, 15, 9, 0, 0, tzinfo=UTC)


class TestGeofencePresets:
    """Tests for arrive/leave home presets."""

    def test_arrive_home(self):
        rule = arrive_home()

        assert rule.id == ARRIVE_HOME_ID
        assert rule.trigger_types == ["arrive"]
        assert rule.zone == "home"
        assert rule.preset is True
        assert [type(a) for a in rule.actions] == [
            DeviceSetAction,
            SceneActivateAction,
            HvacSetAction,
            NotifyAction,
        ]

        # Security is disarmed before the welcome scene
        assert rule.actions[0].device_id == "security_panel"
        assert rule.actions[0].value is False
        assert rule.actions[1].scene_id == "welcome_home"
        assert rule.actions[2].mode == "comfort"
        assert rule.actions[3].message.startswith("Welcome home")

    def test_leave_home(self):
        rule = leave_home("cabin")

        assert rule.id == LEAVE_HOME_ID
        assert rule.trigger_types == ["depart"]
        assert rule.zone == "cabin"
        assert rule.actions[0].value is True
        assert rule.actions[1].scene_id == "goodbye"
        assert rule.actions[2].mode == "eco"

    def test_default_presets(self):
        assert [r.id for r in default_presets()] == [ARRIVE_HOME_ID, LEAVE_HOME_ID]

    @pytest.mark.asyncio
    async def test_arrive_home_runs_in_order(self):
        """Every provider is called and the notification comes last."""
        devices = MockDeviceController()
        scenes = MockSceneActivator()
        climate = MockClimateController()
        notifier = MockNotifier()
        dispatcher = ActionDispatcher(devices, scenes, notifier, climate)
        engine = RuleEngine(dispatcher, HistoryStore())
        engine.seed_presets(default_presets())

        ctx = Context(timestamp=T0, presence=Presence(PresenceStatus.HOME, 1, 1.0))
        summary = await engine.handle_trigger(
            Trigger(type="arrive", zone="home", timestamp=T0), ctx
        )

        assert summary.matched == 1
        assert summary.executed == 1
        assert devices.calls == [("security_panel", "alarm_armed", False)]
        assert scenes.calls == ["welcome_home"]
        assert climate.mode == "comfort"
        assert climate.target == 22
        assert notifier.bodies == ["Welcome home! Security disarmed, lights on."]


class TestAmbientLighting:
    """Tests for ambient_lighting preset."""

    def test_defaults(self):
        rule = ambient_lighting()

        assert rule.trigger_types == ["time_change"]
        assert isinstance(rule.conditions[0], PresenceCondition)
        assert rule.conditions[1] == TimeRangeCondition(start=17, end=22)
        assert rule.actions == [SceneActivateAction("evening_ambience")]
        assert rule.cooldown_ms == 4 * 60 * 60 * 1000

    def test_custom(self):
        rule = ambient_lighting("cozy", scene_id="cozy_scene", start_hour=18, end_hour=1)

        assert rule.id == "cozy"
        assert rule.conditions[1] == TimeRangeCondition(start=18, end=1)


class TestEnergySaving:
    """Tests for energy_saving_when_away preset."""

    def test_defaults(self):
        rule = energy_saving_when_away()

        assert set(rule.trigger_types) == {"presence_change", "activity_change"}
        assert rule.conditions == [AwayOrInactiveCondition(duration_ms=30 * 60 * 1000)]
        assert rule.actions == [HvacSetAction(mode="eco")]

    @pytest.mark.asyncio
    async def test_fires_on_scheduled_path_after_away_streak(self):
        climate = MockClimateController()
        history = HistoryStore()
        engine = RuleEngine(ActionDispatcher(climate=climate, notifier=MockNotifier()), history)
        engine.add_rule(energy_saving_when_away(away_minutes=10))

        def away(ts):
            return Context(
                timestamp=ts,
                presence=Presence(PresenceStatus.AWAY, 0, 1.0),
                activity_level=ActivityLevel.from_score(0.0),
            )

        history.append_context(away(T0))
        early = away(T0 + timedelta(minutes=5))
        history.append_context(early)
        summary = await engine.run_scheduled(early)
        assert summary.matched == 0

        late = away(T0 + timedelta(minutes=10))
        history.append_context(late)
        summary = await engine.run_scheduled(late)
        assert summary.matched == 1
        assert climate.mode == "eco"
