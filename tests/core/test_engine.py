"""Tests for the AmbientEngine facade."""

from datetime import datetime, timedelta, UTC

import asyncio

import pytest

from home_ambient.core import (
    AmbientEngine,
    EngineConfig,
    EventBus,
    EventFilter,
    InMemorySettingsStore,
    InvalidRule,
    InvalidTrigger,
)
from home_ambient.core.engine import PATTERNS_KEY, RULES_KEY
from home_ambient.modules.automation import (
    ARRIVE_HOME_ID,
    LEAVE_HOME_ID,
    LabelCondition,
    MockClimateController,
    MockDeviceController,
    MockNotifier,
    MockSceneActivator,
    OutcomeStatus,
    TimeRangeCondition,
)
from home_ambient.modules.classifier import Profile, ValuesIndicator
from home_ambient.modules.context import DeviceChange, MockSignalSource, Presence, PresenceStatus

T0 = datetime(2025, 1, 15, 9, 0, 0, tzinfo=UTC)


def presence_profiles():
    """Two profiles keyed purely on presence, so labels are easy to drive."""
    return [
        Profile(
            id="home",
            label="home",
            name="Home",
            indicators=(ValuesIndicator("presence.status", frozenset({"home"})),),
        ),
        Profile(
            id="away",
            label="away",
            name="Away",
            indicators=(ValuesIndicator("presence.status", frozenset({"away"})),),
        ),
    ]


@pytest.fixture
def source():
    src = MockSignalSource()
    src.set_current_time(T0)
    src.set_presence(Presence(PresenceStatus.HOME, occupant_count=1, confidence=1.0))
    return src


@pytest.fixture
def notifier():
    return MockNotifier()


@pytest.fixture
def settings():
    return InMemorySettingsStore()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def engine(source, notifier, settings, bus):
    """Engine without presets, driven manually."""
    return AmbientEngine(
        source,
        notifier=notifier,
        settings=settings,
        bus=bus,
        profiles=presence_profiles(),
        mood_profiles=[],
        activity_profiles=[],
        presets=[],
        config=EngineConfig(min_pattern_samples=5),
    )


WELCOME = {
    "trigger": "arrive",
    "zone": "home",
    "actions": [{"type": "sendNotification", "message": "Welcome {user}"}],
}


class TestSubmitTrigger:
    """End-to-end trigger handling."""

    @pytest.mark.asyncio
    async def test_notification_with_user_substitution(self, engine, notifier):
        """An arrive trigger with userId runs the rule and renders the message."""
        await engine.start(run_timers=False)
        rule = await engine.add_rule(WELCOME)

        summary = await engine.submit_trigger("arrive", "home", {"userId": "erik"})

        assert summary.matched == 1
        assert summary.executed == 1
        assert notifier.bodies == ["Welcome erik"]
        history = engine.get_execution_history()
        assert len(history) == 1
        assert history[0].rule_id == rule.id
        assert history[0].outcome.status == OutcomeStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_disabled_rule_not_run(self, engine, notifier):
        await engine.start(run_timers=False)
        await engine.add_rule(WELCOME)
        off = await engine.add_rule({**WELCOME, "enabled": False})

        summary = await engine.submit_trigger("arrive", "home", {"userId": "erik"})

        assert summary.matched == 1
        assert engine.get_rule(off.id).execution_count == 0
        assert len(notifier.calls) == 1

    @pytest.mark.asyncio
    async def test_cooldown(self, engine, source, notifier):
        await engine.start(run_timers=False)
        await engine.add_rule({**WELCOME, "cooldown_ms": 300000})

        first = await engine.submit_trigger("arrive", "home")
        source.set_current_time(T0 + timedelta(milliseconds=60000))
        second = await engine.submit_trigger("arrive", "home")

        assert (first.matched, second.matched) == (1, 0)
        assert notifier.bodies == ["Welcome someone"]

    @pytest.mark.asyncio
    async def test_other_zone_not_matched(self, engine, notifier):
        await engine.start(run_timers=False)
        await engine.add_rule(WELCOME)

        summary = await engine.submit_trigger("arrive", "office")

        assert summary.matched == 0
        assert notifier.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "type_, zone, payload",
        [("", "home", None), ("arrive", "", None), ("arrive", "home", "not-a-map")],
    )
    async def test_invalid_trigger(self, engine, settings, type_, zone, payload):
        await engine.start(run_timers=False)
        writes = settings.write_count

        with pytest.raises(InvalidTrigger):
            await engine.submit_trigger(type_, zone, payload)

        assert engine.get_execution_history() == []
        assert settings.write_count == writes


class TestPersistence:
    """Rules and patterns round-trip through the settings store."""

    @pytest.mark.asyncio
    async def test_rule_changes_persisted(self, engine, settings):
        await engine.start(run_timers=False)
        rule = await engine.add_rule(WELCOME)
        assert rule.id in settings.snapshot()[RULES_KEY]

        await engine.set_rule_enabled(rule.id, False)
        assert settings.snapshot()[RULES_KEY][rule.id]["enabled"] is False

        assert await engine.remove_rule(rule.id) is True
        assert settings.snapshot()[RULES_KEY] == {}

    @pytest.mark.asyncio
    async def test_execution_bookkeeping_persisted(self, engine, settings):
        await engine.start(run_timers=False)
        rule = await engine.add_rule(WELCOME)

        await engine.submit_trigger("arrive", "home")

        stored = settings.snapshot()[RULES_KEY][rule.id]
        assert stored["execution_count"] == 1
        assert stored["last_executed_at"] == T0.isoformat()

    @pytest.mark.asyncio
    async def test_start_loads_stored_rules_and_seeds_presets(self, source, notifier):
        stored = {
            "custom": {
                "id": "custom",
                "name": "Custom",
                "triggers": ["depart"],
                "zone": "home",
                "actions": [{"type": "notify", "message": "Bye"}],
            },
            "broken": {"id": "broken", "zone": "home"},
        }
        settings = InMemorySettingsStore({RULES_KEY: stored})
        engine = AmbientEngine(
            source,
            devices=MockDeviceController(),
            scenes=MockSceneActivator(),
            climate=MockClimateController(),
            notifier=notifier,
            settings=settings,
        )

        await engine.start(run_timers=False)

        ids = {r.id for r in engine.list_rules()}
        assert ids == {"custom", ARRIVE_HOME_ID, LEAVE_HOME_ID}
        assert set(settings.snapshot()[RULES_KEY]) == ids

        summary = await engine.submit_trigger("depart", "home")
        assert summary.matched == 2
        assert summary.executed == 2
        assert "Bye" in notifier.bodies

    @pytest.mark.asyncio
    async def test_stored_preset_not_overwritten(self, source):
        settings = InMemorySettingsStore(
            {
                RULES_KEY: {
                    ARRIVE_HOME_ID: {
                        "id": ARRIVE_HOME_ID,
                        "trigger": "arrive",
                        "zone": "home",
                        "actions": [],
                        "enabled": False,
                    }
                }
            }
        )
        engine = AmbientEngine(source, settings=settings)

        await engine.start(run_timers=False)

        assert engine.get_rule(ARRIVE_HOME_ID).enabled is False
        assert engine.get_rule(ARRIVE_HOME_ID).actions == []

    @pytest.mark.asyncio
    async def test_unreadable_settings_do_not_block_start(self, source):
        class BrokenStore(InMemorySettingsStore):
            async def get(self, key):
                raise OSError("disk gone")

        engine = AmbientEngine(source, settings=BrokenStore())
        await engine.start(run_timers=False)

        assert engine.is_started
        assert {r.id for r in engine.list_rules()} == {ARRIVE_HOME_ID, LEAVE_HOME_ID}


class TestClassification:
    """Sampling, classification and transition triggers."""

    @pytest.mark.asyncio
    async def test_transition_fires_rule(self, engine, source, notifier, bus):
        events = []
        bus.subscribe(lambda e: events.append(e), EventFilter(event_type="classifier.transition"))
        await engine.start(run_timers=False)
        await engine.add_rule(
            {
                "triggers": ["presence_change"],
                "zone": "home",
                "conditions": [{"type": "label", "value": "away"}],
                "actions": [{"type": "notify", "message": "{from_label} -> {to_label}"}],
            }
        )

        first = await engine.sample_and_classify()
        assert first.label == "home"
        assert first.transition.kind.value == "label_change"

        source.set_presence(Presence(PresenceStatus.AWAY, 0, 1.0))
        source.set_current_time(T0 + timedelta(seconds=30))
        second = await engine.sample_and_classify()

        assert second.label == "away"
        assert second.transition.kind.value == "presence_change"
        assert notifier.bodies == ["home -> away"]
        assert [e.payload["to_label"] for e in events] == ["home", "away"]
        assert len(engine.get_transitions()) == 2

    @pytest.mark.asyncio
    async def test_same_label_is_not_a_transition(self, engine, source):
        await engine.start(run_timers=False)

        await engine.sample_and_classify()
        source.set_current_time(T0 + timedelta(seconds=30))
        result = await engine.sample_and_classify()

        assert result.label == "home"
        assert result.transition is None
        assert engine.get_classifier_state().current_label == "home"

    @pytest.mark.asyncio
    async def test_classifier_state_is_a_copy(self, engine):
        await engine.start(run_timers=False)
        await engine.sample_and_classify()

        state = engine.get_classifier_state()
        state.current_label = "tampered"

        assert engine.get_classifier_state().current_label == "home"

    @pytest.mark.asyncio
    async def test_unknown_classifier_rejected(self, engine):
        await engine.start(run_timers=False)

        with pytest.raises(ValueError):
            engine.get_classifier_state("weather")
        with pytest.raises(ValueError):
            engine.replace_profiles([], classifier="weather")

    @pytest.mark.asyncio
    async def test_replace_profiles(self, engine, source):
        await engine.start(run_timers=False)
        engine.replace_profiles([])

        result = await engine.sample_and_classify()

        assert result.label is None
        assert result.skipped

    @pytest.mark.asyncio
    async def test_scheduled_evaluation(self, engine, source, notifier):
        await engine.start(run_timers=False)
        await engine.add_rule(
            {
                "trigger": "presence_change",
                "zone": "home",
                "conditions": [{"type": "presence", "value": "away"}],
                "actions": [{"type": "notify", "message": "Still away"}],
            }
        )

        assert (await engine.evaluate_rules()).matched == 0

        source.set_presence(Presence(PresenceStatus.AWAY, 0, 1.0))
        summary = await engine.evaluate_rules()

        assert summary.matched == 1
        assert notifier.bodies == ["Still away"]


class TestPatterns:
    """Mining and promotion."""

    async def _collect_away_mornings(self, engine, source, count):
        source.set_presence(Presence(PresenceStatus.AWAY, 0, 1.0))
        for i in range(count):
            source.set_current_time(T0 + timedelta(minutes=i))
            await engine.sample_and_classify()

    @pytest.mark.asyncio
    async def test_too_few_samples(self, engine, source):
        await engine.start(run_timers=False)
        await self._collect_away_mornings(engine, source, 4)

        assert await engine.mine_patterns() == []
        assert engine.get_patterns() == []

    @pytest.mark.asyncio
    async def test_mine_publishes_and_persists(self, engine, source, settings, bus):
        discovered = []
        bus.subscribe(
            lambda e: discovered.append(e.payload["id"]),
            EventFilter(event_type="pattern.discovered"),
        )
        await engine.start(run_timers=False)
        await self._collect_away_mornings(engine, source, 5)

        patterns = await engine.mine_patterns()
        again = await engine.mine_patterns()

        assert [p.id for p in patterns] == ["away@morning"]
        assert patterns[0].confidence == 1.0
        assert [p.id for p in again] == ["away@morning"]
        assert discovered == ["away@morning"]
        assert "away@morning" in settings.snapshot()[PATTERNS_KEY]

    @pytest.mark.asyncio
    async def test_patterns_reloaded_on_start(self, engine, source, settings):
        await engine.start(run_timers=False)
        await self._collect_away_mornings(engine, source, 5)
        await engine.mine_patterns()

        restarted = AmbientEngine(source, settings=settings, presets=[])
        await restarted.start(run_timers=False)

        assert [p.id for p in restarted.get_patterns()] == ["away@morning"]

    @pytest.mark.asyncio
    async def test_mined_patterns_never_become_rules(self, engine, source):
        await engine.start(run_timers=False)
        await self._collect_away_mornings(engine, source, 5)
        await engine.mine_patterns()

        assert engine.list_rules() == []

    @pytest.mark.asyncio
    async def test_promote_pattern(self, engine, source, notifier):
        await engine.start(run_timers=False)
        await self._collect_away_mornings(engine, source, 5)
        await engine.mine_patterns()

        rule = await engine.promote_pattern(
            "away@morning", [{"type": "notify", "message": "Away again"}]
        )

        assert rule.conditions == [
            LabelCondition("away", classifier="context"),
            TimeRangeCondition(8, 11),
        ]
        assert "presence_change" in rule.trigger_types

        # Come home, then leave again within the morning bucket
        source.set_presence(Presence(PresenceStatus.HOME, 1, 1.0))
        source.set_current_time(T0 + timedelta(hours=1))
        await engine.sample_and_classify()
        source.set_presence(Presence(PresenceStatus.AWAY, 0, 1.0))
        source.set_current_time(T0 + timedelta(hours=1, minutes=1))
        await engine.sample_and_classify()

        assert notifier.bodies == ["Away again"]

    @pytest.mark.asyncio
    async def test_promote_unknown_pattern(self, engine):
        await engine.start(run_timers=False)
        with pytest.raises(InvalidRule):
            await engine.promote_pattern("nothing@night", [])


class TestLifecycle:
    """Start and shutdown."""

    @pytest.mark.asyncio
    async def test_start_and_shutdown_timers(self, engine):
        await engine.start()

        assert engine.is_started
        assert all(t.is_running for t in engine.tickers)

        await engine.shutdown()

        assert not engine.is_started
        assert not any(t.is_running for t in engine.tickers)

    @pytest.mark.asyncio
    async def test_statistics(self, engine):
        await engine.start(run_timers=False)
        await engine.add_rule(WELCOME)
        await engine.submit_trigger("arrive", "home")

        stats = engine.get_statistics()
        assert stats.total_rules == 1
        assert stats.total_executions == 1
        assert stats.successful_executions == 1


def band_profiles():
    """Mood profiles keyed purely on the activity band."""
    return [
        Profile(
            id="calm",
            label="calm",
            name="Calm",
            indicators=(ValuesIndicator("activity_level.band", frozenset({"idle"})),),
        ),
        Profile(
            id="lively",
            label="lively",
            name="Lively",
            indicators=(
                ValuesIndicator("activity_level.band", frozenset({"moderate", "active"})),
            ),
        ),
    ]


class TestMoodAndActivity:
    """Mood and activity classifiers run alongside the context classifier."""

    def test_floors_from_config(self, source):
        engine = AmbientEngine(
            source, config=EngineConfig(mood_floor=0.7, activity_floor=0.65)
        )

        assert engine.classifiers["context"].floor == 0.5
        assert engine.classifiers["mood"].floor == 0.7
        assert engine.classifiers["activity"].floor == 0.65
        assert engine.classifiers["mood"].profiles

    @pytest.mark.asyncio
    async def test_mood_transition_fires_rule(self, source, notifier, bus):
        transitions = []
        bus.subscribe(
            lambda e: transitions.append((e.payload["classifier"], e.payload["to_label"])),
            EventFilter(event_type="classifier.transition"),
        )
        engine = AmbientEngine(
            source,
            notifier=notifier,
            bus=bus,
            profiles=presence_profiles(),
            mood_profiles=band_profiles(),
            activity_profiles=[],
            presets=[],
        )
        await engine.start(run_timers=False)
        await engine.add_rule(
            {
                "trigger": "activity_change",
                "zone": "home",
                "conditions": [{"type": "label", "value": "lively"}],
                "actions": [
                    {"type": "notify", "message": "{classifier}: {from_label} -> {to_label}"}
                ],
            }
        )

        await engine.sample_and_classify()
        for i in range(3):
            source.add_device_change(
                DeviceChange(
                    device_name=f"kitchen_light_{i}",
                    timestamp=T0 + timedelta(seconds=10 + i),
                    room="kitchen",
                )
            )
        source.set_current_time(T0 + timedelta(seconds=30))
        result = await engine.sample_and_classify()

        # The context label did not change, the mood did
        assert result.label == "home"
        assert result.transition is None
        assert notifier.bodies == ["mood: calm -> lively"]
        assert engine.get_classifier_state("mood").current_label == "lively"
        assert transitions == [("context", "home"), ("mood", "calm"), ("mood", "lively")]
        assert len(engine.get_transitions(classifier="mood")) == 2
        assert len(engine.get_transitions()) == 1

    @pytest.mark.asyncio
    async def test_mood_labels_not_mined(self, source):
        """Only context labels feed pattern mining."""
        engine = AmbientEngine(
            source,
            profiles=[],
            mood_profiles=band_profiles(),
            activity_profiles=[],
            presets=[],
            config=EngineConfig(min_pattern_samples=3),
        )
        await engine.start(run_timers=False)
        for i in range(3):
            source.set_current_time(T0 + timedelta(minutes=i))
            await engine.sample_and_classify()

        assert engine.get_classifier_state("mood").current_label == "calm"
        assert await engine.mine_patterns() == []


class GatedScenes(MockSceneActivator):
    """Scene activator that blocks until released."""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def activate(self, scene_id):
        self.entered.set()
        await self.release.wait()
        return await super().activate(scene_id)


class TestSerialization:
    """Triggers, ticks and shutdown share one lock."""

    @pytest.fixture
    def scenes(self):
        return GatedScenes()

    @pytest.fixture
    def gated_engine(self, source, scenes):
        return AmbientEngine(
            source,
            scenes=scenes,
            profiles=presence_profiles(),
            mood_profiles=[],
            activity_profiles=[],
            presets=[],
        )

    async def _start_welcome(self, engine, scenes):
        await engine.start(run_timers=False)
        await engine.add_rule(
            {
                "trigger": "arrive",
                "zone": "home",
                "actions": [{"type": "scene_activate", "scene_id": "welcome"}],
            }
        )
        task = asyncio.create_task(engine.submit_trigger("arrive", "home"))
        await scenes.entered.wait()
        return task

    @staticmethod
    async def _yield(times=5):
        for _ in range(times):
            await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_tick_waits_for_running_trigger(self, gated_engine, scenes):
        trigger_task = await self._start_welcome(gated_engine, scenes)

        tick_task = asyncio.create_task(gated_engine.sample_and_classify())
        await self._yield()

        assert not tick_task.done()
        assert gated_engine.get_classifier_state().current_label is None

        scenes.release.set()
        summary = await trigger_task
        result = await tick_task

        assert summary.executed == 1
        assert result.label == "home"
        assert scenes.calls == ["welcome"]

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight_dispatch(self, gated_engine, scenes):
        """A dispatch already running finishes and is recorded before shutdown returns."""
        trigger_task = await self._start_welcome(gated_engine, scenes)

        shutdown_task = asyncio.create_task(gated_engine.shutdown())
        await self._yield()

        assert not shutdown_task.done()
        assert gated_engine.get_execution_history() == []

        scenes.release.set()
        await shutdown_task

        assert trigger_task.done()
        history = gated_engine.get_execution_history()
        assert len(history) == 1
        assert history[0].outcome.status == OutcomeStatus.SUCCESS
        assert not gated_engine.is_started
