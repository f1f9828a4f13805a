"""
Rule engine - rule storage, trigger matching and execution bookkeeping.

Handles trigger matching, condition evaluation, and hands matched rules to
the action dispatcher.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from home_ambient.core.bus import Event, EventBus
from home_ambient.core.errors import InvalidRule
from home_ambient.modules.context import Context
from home_ambient.modules.history import HistoryStore

from .dispatcher import ActionDispatcher
from .evaluators import ConditionEvaluator
from .models import (
    EngineStatistics,
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionSummary,
    MatchedRule,
    OutcomeStatus,
    Rule,
    Trigger,
)

logger = logging.getLogger(__name__)

RuleSpec = Union[Rule, Mapping[str, Any]]


class RuleEngine:
    """
    Core engine for automation rule processing.

    Responsibilities:
    - Own the rule set (add, remove, enable/disable)
    - Match triggers against rules (type, zone, conditions, cooldown)
    - Re-check standing conditions on the scheduled path
    - Dispatch matched rules and record their outcomes
    """

    def __init__(
        self,
        dispatcher: ActionDispatcher,
        history: HistoryStore,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._history = history
        self._bus = bus
        self._evaluator = ConditionEvaluator(history)

        # Rules by id, in insertion order
        self._rules: Dict[str, Rule] = {}

        # Running totals (the history buffer is bounded, these are not)
        self._total_executions = 0
        self._successful_executions = 0
        self._failed_executions = 0

    @property
    def dispatcher(self) -> ActionDispatcher:
        return self._dispatcher

    # =========================================================================
    # Rule Management
    # =========================================================================

    def add_rule(self, spec: RuleSpec) -> Rule:
        """
        Add a rule.

        Args:
            spec: A Rule, or a dict with "trigger"/"triggers", "zone" and
                "actions" (plus optional conditions, cooldown_ms, name, ...)

        Returns:
            The stored Rule

        Raises:
            InvalidRule: If the rule definition is malformed or the id is taken.
                Nothing is changed in that case.
        """
        rule = spec if isinstance(spec, Rule) else self.parse_rule(spec)
        self.validate_rule(rule)
        if rule.id in self._rules:
            raise InvalidRule(f"Rule id already exists: {rule.id}")

        self._rules[rule.id] = rule
        logger.info(f"Added rule {rule.id} ({rule.name})")
        self._publish("rule.added", rule.zone, {"rule_id": rule.id, "rule_name": rule.name})
        return rule

    def remove_rule(self, rule_id: str) -> bool:
        """Remove a rule. Returns False if it did not exist."""
        rule = self._rules.pop(rule_id, None)
        if rule is None:
            return False
        logger.info(f"Removed rule {rule_id}")
        self._publish("rule.removed", rule.zone, {"rule_id": rule_id})
        return True

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def list_rules(self) -> List[Rule]:
        return list(self._rules.values())

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> bool:
        """
        Enable or disable a rule. Takes effect on the next evaluation.

        Returns:
            False if the rule does not exist
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            return False
        rule.enabled = enabled
        logger.info(f"Rule {rule_id} {'enabled' if enabled else 'disabled'}")
        return True

    def load_rules(self, data: Union[Mapping[str, Any], Iterable[Mapping[str, Any]]]) -> int:
        """
        Load serialized rules (a map keyed by id, or a list).

        Invalid entries are logged and skipped. Existing ids are replaced.

        Returns:
            Number of rules loaded
        """
        entries = data.values() if isinstance(data, Mapping) else data
        loaded = 0
        for entry in entries:
            try:
                rule = self.parse_rule(entry)
                self.validate_rule(rule)
            except InvalidRule as e:
                logger.warning(f"Skipping stored rule: {e}")
                continue
            self._rules[rule.id] = rule
            loaded += 1
        logger.debug(f"Loaded {loaded} rules")
        return loaded

    def seed_presets(self, rules: Iterable[Rule]) -> int:
        """Add preset rules whose ids are not already present."""
        added = 0
        for rule in rules:
            if rule.id in self._rules:
                continue
            self.validate_rule(rule)
            self._rules[rule.id] = rule
            added += 1
        if added:
            logger.info(f"Seeded {added} preset rules")
        return added

    def export_rules(self) -> Dict[str, Dict[str, Any]]:
        """Serialize all rules as a plain map keyed by id."""
        return {rule_id: rule.to_dict() for rule_id, rule in self._rules.items()}

    @staticmethod
    def parse_rule(spec: Mapping[str, Any]) -> Rule:
        """Build a Rule from a dict, converting parse errors to InvalidRule."""
        if not isinstance(spec, Mapping):
            raise InvalidRule(f"Rule spec must be a mapping, got {type(spec).__name__}")
        if not (spec.get("trigger") or spec.get("triggers")):
            raise InvalidRule("Rule requires at least one trigger")
        if not spec.get("zone") or not isinstance(spec.get("zone"), str):
            raise InvalidRule("Rule requires a zone")
        if not isinstance(spec.get("actions"), list):
            raise InvalidRule("Rule requires an actions list")
        try:
            return Rule.from_dict(dict(spec))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidRule(f"Malformed rule: {e!r}") from e

    @staticmethod
    def validate_rule(rule: Rule) -> None:
        """Raise InvalidRule unless the rule has trigger types and a zone."""
        if not rule.trigger_types or not all(
            isinstance(t, str) and t for t in rule.trigger_types
        ):
            raise InvalidRule(f"Rule {rule.id}: trigger types must be non-empty strings")
        if not rule.zone:
            raise InvalidRule(f"Rule {rule.id}: zone is required")
        if rule.cooldown_ms < 0:
            raise InvalidRule(f"Rule {rule.id}: cooldown_ms must be >= 0")

    # =========================================================================
    # Matching
    # =========================================================================

    def match(
        self, trigger: Trigger, ctx: Context, now: Optional[datetime] = None
    ) -> List[Rule]:
        """
        Rules that should run for a trigger. Does not change any state.

        A rule matches when it is enabled, lists the trigger type, covers the
        trigger zone (or is "*"), all its conditions pass and its cooldown
        has elapsed.
        """
        if now is None:
            now = trigger.timestamp

        matched = []
        for rule in self._rules.values():
            if not rule.enabled:
                continue
            if trigger.type not in rule.trigger_types:
                continue
            if not rule.applies_to_zone(trigger.zone):
                continue
            if not rule.cooldown_elapsed(now):
                logger.debug(f"Rule {rule.id} in cooldown, skipping")
                continue
            if not self._evaluator.evaluate_all(rule.conditions, ctx, trigger, now):
                continue
            matched.append(rule)
        return matched

    def evaluate(self, ctx: Context, now: Optional[datetime] = None) -> List[MatchedRule]:
        """
        Conditions-only matching for the scheduled path.

        Considers enabled rules with at least one standing condition; the
        trigger type and zone are not checked.
        """
        if now is None:
            now = ctx.timestamp

        matched = []
        for rule in self._rules.values():
            if not rule.enabled or not rule.conditions:
                continue
            if not rule.cooldown_elapsed(now):
                continue
            if not self._evaluator.evaluate_all(rule.conditions, ctx, None, now):
                continue
            matched.append(MatchedRule(rule=rule))
        return matched

    # =========================================================================
    # Execution
    # =========================================================================

    async def handle_trigger(
        self, trigger: Trigger, ctx: Context, now: Optional[datetime] = None
    ) -> ExecutionSummary:
        """
        Match a trigger and execute every matched rule.

        One rule's failure never stops the others.
        """
        if now is None:
            now = trigger.timestamp

        rules = self.match(trigger, ctx, now)
        logger.debug(f"Trigger {trigger.type}@{trigger.zone}: {len(rules)} rules matched")
        return await self._execute_all([MatchedRule(rule, trigger) for rule in rules], ctx, now)

    async def run_scheduled(self, ctx: Context, now: Optional[datetime] = None) -> ExecutionSummary:
        """Execute every rule whose standing conditions currently hold."""
        if now is None:
            now = ctx.timestamp
        return await self._execute_all(self.evaluate(ctx, now), ctx, now)

    async def _execute_all(
        self, matches: List[MatchedRule], ctx: Context, now: datetime
    ) -> ExecutionSummary:
        summary = ExecutionSummary(matched=len(matches))
        for item in matches:
            try:
                record = await self.execute_rule(item.rule, ctx, item.trigger, now)
            except Exception as e:
                logger.error(f"Error executing rule {item.rule.id}: {e}", exc_info=True)
                summary.errors += 1
                continue

            summary.records.append(record)
            status = record.outcome.status
            if status in (OutcomeStatus.SUCCESS, OutcomeStatus.PARTIAL):
                summary.executed += 1
            if status in (OutcomeStatus.PARTIAL, OutcomeStatus.ERROR):
                summary.errors += 1
        return summary

    async def execute_rule(
        self,
        rule: Rule,
        ctx: Context,
        trigger: Optional[Trigger],
        now: datetime,
    ) -> ExecutionRecord:
        """
        Dispatch one rule's actions and record the outcome.

        Stamps last_executed_at and execution_count, appends an
        ExecutionRecord to history and publishes "rule.executed".
        """
        outcome: ExecutionOutcome = await self._dispatcher.dispatch(rule.actions, ctx, trigger)

        rule.last_executed_at = now
        rule.execution_count += 1

        record = ExecutionRecord(
            rule_id=rule.id,
            rule_name=rule.name,
            trigger=trigger.to_dict() if trigger else None,
            outcome=outcome,
            timestamp=now,
            duration_ms=sum(r.duration_ms for r in outcome.results),
        )
        self._history.append_execution(record)

        self._total_executions += 1
        if outcome.status == OutcomeStatus.SUCCESS:
            self._successful_executions += 1
        else:
            self._failed_executions += 1

        logger.info(f"Executed rule {rule.id} ({rule.name}): {outcome.status.value}")
        self._publish(
            "rule.executed",
            trigger.zone if trigger else rule.zone,
            {
                "rule_id": rule.id,
                "rule_name": rule.name,
                "status": outcome.status.value,
                "trigger_type": trigger.type if trigger else None,
                "execution_count": rule.execution_count,
            },
        )
        return record

    # =========================================================================
    # Observation
    # =========================================================================

    def get_execution_history(self, limit: Optional[int] = None) -> List[ExecutionRecord]:
        """Execution records, oldest first (a copy)."""
        return self._history.get_executions(limit)

    def get_statistics(self) -> EngineStatistics:
        return EngineStatistics(
            total_rules=len(self._rules),
            active_rules=sum(1 for r in self._rules.values() if r.enabled),
            total_executions=self._total_executions,
            successful_executions=self._successful_executions,
            failed_executions=self._failed_executions,
        )

    def _publish(self, event_type: str, zone: Optional[str], payload: Dict[str, Any]) -> None:
        if self._bus is None:
            return
        self._bus.publish(Event(type=event_type, source="automation", zone=zone, payload=payload))
