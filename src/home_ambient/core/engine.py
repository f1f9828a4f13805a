"""
AmbientEngine - wires sampling, classification, rules and mining together.

One engine instance owns its rules, profiles and history; nothing is shared
at module level. Three tickers drive it:

    sample   (30 s)   SignalSampler -> context, mood and activity classifiers
                      -> transition triggers
    rules    (30 min) conditions-only rule evaluation
    mining   (1 h)    PatternMiner over label history

Ticks, submitted triggers and rule mutations are serialized by one
asyncio.Lock.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from home_ambient.core.bus import Event, EventBus
from home_ambient.core.config import EngineConfig
from home_ambient.core.errors import InvalidRule, InvalidTrigger
from home_ambient.core.scheduler import Ticker
from home_ambient.core.settings import InMemorySettingsStore, SettingsStore
from home_ambient.modules.automation import (
    ActionConfig,
    ActionDispatcher,
    ClimateController,
    DeviceController,
    EngineStatistics,
    ExecutionRecord,
    ExecutionSummary,
    LabelCondition,
    Notifier,
    Rule,
    RuleEngine,
    SceneActivator,
    TimeRangeCondition,
    Trigger,
    default_presets,
    new_rule_id,
    parse_action,
)
from home_ambient.modules.classifier import (
    Classification,
    ClassifierState,
    Profile,
    StateClassifier,
    Transition,
    TransitionKind,
    activity_profiles as default_activity_profiles,
    context_profiles,
    mood_profiles as default_mood_profiles,
)
from home_ambient.modules.context import Context, SignalSampler, SignalSource, TimeOfDay
from home_ambient.modules.history import BehaviorPattern, HistoryStore, PatternMiner

logger = logging.getLogger(__name__)

RULES_KEY = "ambient_rules"
PATTERNS_KEY = "behavior_patterns"

CONTEXT = "context"
MOOD = "mood"
ACTIVITY = "activity"


class AmbientEngine:
    """
    The public face of the engine.

    Example:
        engine = AmbientEngine(MockSignalSource(), notifier=MockNotifier())
        await engine.start()
        await engine.add_rule({"trigger": "arrive", "zone": "home",
                               "actions": [{"type": "notify", "message": "Hi {user}"}]})
        summary = await engine.submit_trigger("arrive", "home", {"user_id": "erik"})
        await engine.shutdown()
    """

    def __init__(
        self,
        source: SignalSource,
        *,
        devices: Optional[DeviceController] = None,
        scenes: Optional[SceneActivator] = None,
        notifier: Optional[Notifier] = None,
        climate: Optional[ClimateController] = None,
        settings: Optional[SettingsStore] = None,
        config: Optional[EngineConfig] = None,
        profiles: Optional[Sequence[Profile]] = None,
        mood_profiles: Optional[Sequence[Profile]] = None,
        activity_profiles: Optional[Sequence[Profile]] = None,
        presets: Optional[Sequence[Rule]] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        """
        Args:
            source: Signal source for presence, devices and sensors
            devices, scenes, notifier, climate: Capability providers (any may be None)
            settings: Key/value persistence (defaults to in-memory)
            config: Engine configuration (defaults to EngineConfig())
            profiles: Context classifier profiles (defaults to the household set)
            mood_profiles: Mood classifier profiles (defaults to mood_profiles())
            activity_profiles: Activity classifier profiles (defaults to activity_profiles())
            presets: Rules seeded at start (defaults to arrive/leave home)
            bus: Event bus for observers (a new one if not given)
        """
        self.config = config or EngineConfig()
        self.bus = bus or EventBus()
        self.settings = settings or InMemorySettingsStore()

        self.history = HistoryStore(self.config.history_capacity, self.config.pattern_capacity)
        self.sampler = SignalSampler(source, activity_window=self.config.activity_window)
        # The context classifier records into the shared history that the
        # miner and the away-or-inactive condition read. Mood and activity
        # keep their own.
        self.classifiers: Dict[str, StateClassifier] = {
            CONTEXT: StateClassifier(
                context_profiles() if profiles is None else profiles,
                self.history,
                floor=self.config.classification_floor,
                name=CONTEXT,
            ),
            MOOD: StateClassifier(
                default_mood_profiles() if mood_profiles is None else mood_profiles,
                self._side_history(),
                floor=self.config.mood_floor,
                name=MOOD,
            ),
            ACTIVITY: StateClassifier(
                default_activity_profiles() if activity_profiles is None else activity_profiles,
                self._side_history(),
                floor=self.config.activity_floor,
                name=ACTIVITY,
            ),
        }
        self.classifier = self.classifiers[CONTEXT]
        self.dispatcher = ActionDispatcher(
            devices=devices,
            scenes=scenes,
            notifier=notifier,
            climate=climate,
            action_timeout=self.config.action_timeout,
        )
        self.rules = RuleEngine(self.dispatcher, self.history, self.bus)
        self.miner = PatternMiner(
            min_samples=self.config.min_pattern_samples,
            min_confidence=self.config.min_pattern_confidence,
        )
        self._presets = list(presets) if presets is not None else None

        self._lock = asyncio.Lock()
        self._tickers = [
            Ticker("sample", self.sample_and_classify, self.config.sample_interval, True),
            Ticker("rules", self.evaluate_rules, self.config.rule_interval),
            Ticker("mining", self.mine_patterns, self.config.mining_interval),
        ]
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def tickers(self) -> List[Ticker]:
        return list(self._tickers)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self, run_timers: bool = True) -> None:
        """
        Load stored rules and patterns, seed presets, start the tickers.

        Args:
            run_timers: False to skip the tickers (ticks are then driven by
                calling sample_and_classify / evaluate_rules / mine_patterns)
        """
        if self._started:
            return

        async with self._lock:
            stored_rules = await self._load(RULES_KEY)
            if stored_rules:
                self.rules.load_rules(stored_rules)

            stored_patterns = await self._load(PATTERNS_KEY)
            if stored_patterns:
                for data in stored_patterns.values():
                    try:
                        self.history.put_pattern(BehaviorPattern.from_dict(data))
                    except (KeyError, TypeError, ValueError) as e:
                        logger.warning(f"Skipping stored pattern: {e}")

            if self.config.seed_presets:
                presets = self._presets
                if presets is None:
                    presets = default_presets(self.config.home_zone)
                if self.rules.seed_presets(presets):
                    await self._save_rules()

        if run_timers:
            for ticker in self._tickers:
                ticker.start()

        self._started = True
        stats = self.rules.get_statistics()
        logger.info(
            f"AmbientEngine started with {stats.total_rules} rules, "
            f"{sum(len(c.profiles) for c in self.classifiers.values())} profiles"
        )

    async def shutdown(self) -> None:
        """
        Stop all tickers and wait for in-flight work.

        A dispatch already running is allowed to finish.
        """
        for ticker in self._tickers:
            await ticker.stop()
        # Wait for a trigger being handled outside the tickers
        async with self._lock:
            self._started = False
        logger.info("AmbientEngine stopped")

    # =========================================================================
    # Ticks
    # =========================================================================

    async def sample_and_classify(self, now: Optional[datetime] = None) -> Classification:
        """
        Sample a Context, run every classifier on it, and feed transitions to
        the rules.

        Each transition becomes a trigger of type kind.value in the home zone,
        with the classifier name in its payload.

        Returns:
            The context classifier's result
        """
        async with self._lock:
            ctx = await self.sampler.sample(now)
            results = {name: c.evaluate(ctx, now) for name, c in self.classifiers.items()}
            for result in results.values():
                if result.transition is not None:
                    await self._handle_transition(result.transition, ctx)
            return results[CONTEXT]

    async def evaluate_rules(self, now: Optional[datetime] = None) -> ExecutionSummary:
        """Conditions-only pass: run rules whose standing conditions hold."""
        async with self._lock:
            ctx = await self.sampler.sample(now)
            summary = await self.rules.run_scheduled(ctx, ctx.timestamp)
            if summary.matched:
                logger.info(
                    f"Scheduled evaluation: {summary.matched} matched, "
                    f"{summary.executed} executed, {summary.errors} errors"
                )
                await self._save_rules()
            return summary

    async def mine_patterns(self, now: Optional[datetime] = None) -> List[BehaviorPattern]:
        """Mine label history; new patterns are published and persisted."""
        async with self._lock:
            known = {p.id for p in self.history.get_patterns()}
            patterns = self.miner.mine(self.history, now or self.sampler.now())
            for pattern in patterns:
                if pattern.id not in known:
                    self.bus.publish(
                        Event(
                            type="pattern.discovered",
                            source="miner",
                            zone=self.config.home_zone,
                            payload=pattern.to_dict(),
                        )
                    )
            if patterns:
                await self._save_patterns()
            return patterns

    async def _handle_transition(self, transition: Transition, ctx: Context) -> None:
        payload = transition.to_payload()
        self.bus.publish(
            Event(
                type="classifier.transition",
                source="classifier",
                zone=self.config.home_zone,
                payload=payload,
                timestamp=transition.timestamp,
            )
        )
        trigger = Trigger(
            type=transition.kind.value,
            zone=self.config.home_zone,
            payload=payload,
            timestamp=transition.timestamp,
        )
        summary = await self.rules.handle_trigger(trigger, ctx, transition.timestamp)
        if summary.matched:
            await self._save_rules()

    # =========================================================================
    # Triggers
    # =========================================================================

    async def submit_trigger(
        self,
        type: str,
        zone: str,
        payload: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> ExecutionSummary:
        """
        Deliver an external trigger (geofence crossing, threshold breach, ...).

        Raises:
            InvalidTrigger: If type or zone is missing. Nothing is changed.
        """
        if not type or not isinstance(type, str):
            raise InvalidTrigger("Trigger requires a type")
        if not zone or not isinstance(zone, str):
            raise InvalidTrigger("Trigger requires a zone")
        if payload is not None and not isinstance(payload, Mapping):
            raise InvalidTrigger("Trigger payload must be a mapping")

        async with self._lock:
            ctx = await self.sampler.sample(now)
            trigger = Trigger(type=type, zone=zone, payload=dict(payload or {}), timestamp=ctx.timestamp)
            summary = await self.rules.handle_trigger(trigger, ctx, ctx.timestamp)
            logger.info(
                f"Trigger {type}@{zone}: {summary.matched} matched, "
                f"{summary.executed} executed, {summary.errors} errors"
            )
            if summary.matched:
                await self._save_rules()
            return summary

    # =========================================================================
    # Rule Management
    # =========================================================================

    async def add_rule(self, spec: Union[Rule, Mapping[str, Any]]) -> Rule:
        """
        Add and persist a rule.

        Raises:
            InvalidRule: If the rule definition is malformed
        """
        async with self._lock:
            rule = self.rules.add_rule(spec)
            await self._save_rules()
            return rule

    async def remove_rule(self, rule_id: str) -> bool:
        async with self._lock:
            removed = self.rules.remove_rule(rule_id)
            if removed:
                await self._save_rules()
            return removed

    async def set_rule_enabled(self, rule_id: str, enabled: bool) -> bool:
        async with self._lock:
            changed = self.rules.set_rule_enabled(rule_id, enabled)
            if changed:
                await self._save_rules()
            return changed

    def list_rules(self) -> List[Rule]:
        return self.rules.list_rules()

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self.rules.get_rule(rule_id)

    async def promote_pattern(
        self,
        pattern_id: str,
        actions: Sequence[Union[ActionConfig, Mapping[str, Any]]],
        *,
        name: Optional[str] = None,
        cooldown_ms: int = 0,
    ) -> Rule:
        """
        Turn a mined pattern into a rule.

        The rule fires on any classifier transition into the pattern's label
        during the pattern's time-of-day bucket.

        Raises:
            InvalidRule: If the pattern is unknown or an action is malformed
        """
        pattern = self.history.get_pattern(pattern_id)
        if pattern is None:
            raise InvalidRule(f"Unknown pattern: {pattern_id}")
        try:
            start, end = TimeOfDay(pattern.time_bucket).hours
            parsed = [a if not isinstance(a, Mapping) else parse_action(dict(a)) for a in actions]
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidRule(f"Cannot promote {pattern_id}: {e!r}") from e

        rule = Rule(
            id=new_rule_id(),
            name=name or f"{pattern.label} during {pattern.time_bucket}",
            zone=self.config.home_zone,
            trigger_types=[kind.value for kind in TransitionKind],
            conditions=[
                LabelCondition(label=pattern.label, classifier=CONTEXT),
                TimeRangeCondition(start, end),
            ],
            actions=parsed,
            cooldown_ms=cooldown_ms,
            description=(
                f"Promoted from pattern {pattern.id} "
                f"({round(pattern.confidence * 100)}% of {pattern.sample_size} samples)"
            ),
        )
        return await self.add_rule(rule)

    def replace_profiles(self, profiles: Sequence[Profile], classifier: str = CONTEXT) -> None:
        """Swap one classifier's profile set. Takes effect on the next tick."""
        self._classifier(classifier).replace_profiles(profiles)

    # =========================================================================
    # Observation
    # =========================================================================

    def get_execution_history(self, limit: Optional[int] = None) -> List[ExecutionRecord]:
        return self.rules.get_execution_history(limit)

    def get_statistics(self) -> EngineStatistics:
        return self.rules.get_statistics()

    def get_classifier_state(self, classifier: str = CONTEXT) -> ClassifierState:
        """A copy of one classifier's held state."""
        return replace(self._classifier(classifier).state)

    def get_patterns(self) -> List[BehaviorPattern]:
        return self.history.get_patterns()

    def get_transitions(
        self, limit: Optional[int] = None, classifier: str = CONTEXT
    ) -> List[Transition]:
        return self._classifier(classifier).history.get_transitions(limit)

    def _classifier(self, name: str) -> StateClassifier:
        classifier = self.classifiers.get(name)
        if classifier is None:
            raise ValueError(
                f"Unknown classifier '{name}', expected one of {sorted(self.classifiers)}"
            )
        return classifier

    def _side_history(self) -> HistoryStore:
        return HistoryStore(self.config.history_capacity, self.config.pattern_capacity)

    # =========================================================================
    # Persistence
    # =========================================================================

    async def _load(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            value = await self.settings.get(key)
        except Exception as e:
            logger.error(f"Failed to read settings '{key}': {e}", exc_info=True)
            return None
        if value is not None and not isinstance(value, Mapping):
            logger.warning(f"Ignoring settings '{key}': expected a map keyed by id")
            return None
        return value

    async def _save_rules(self) -> None:
        await self._save(RULES_KEY, self.rules.export_rules())

    async def _save_patterns(self) -> None:
        await self._save(PATTERNS_KEY, {p.id: p.to_dict() for p in self.history.get_patterns()})

    async def _save(self, key: str, value: Dict[str, Any]) -> None:
        try:
            await self.settings.set(key, value)
        except Exception as e:
            logger.error(f"Failed to write settings '{key}': {e}", exc_info=True)
