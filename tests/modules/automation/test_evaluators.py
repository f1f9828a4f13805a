"""Tests for condition evaluators."""

from datetime import datetime, timedelta, UTC

import pytest

from home_ambient.modules.automation import (
    AwayOrInactiveCondition,
    ConditionEvaluator,
    DayOfWeekCondition,
    LabelCondition,
    PresenceCondition,
    TimeRangeCondition,
    Trigger,
    UnknownCondition,
    UserActiveCondition,
    parse_condition,
)
from home_ambient.modules.context import ActivityLevel, Context, Presence, PresenceStatus
from home_ambient.modules.history import HistoryStore

# Wednesday
T0 = datetime(2025, 1, 15, 10, 0, 0, tzinfo=UTC)


def make_context(ts=T0, status=PresenceStatus.HOME, activity=0.5) -> Context:
    return Context(
        timestamp=ts,
        presence=Presence(status=status, occupant_count=1, confidence=1.0),
        activity_level=ActivityLevel.from_score(activity),
    )


@pytest.fixture
def history():
    return HistoryStore()


@pytest.fixture
def evaluator(history):
    """Create a condition evaluator backed by a history store."""
    return ConditionEvaluator(history)


class TestSimpleConditions:
    def test_presence(self, evaluator):
        ctx = make_context()
        assert evaluator.evaluate(PresenceCondition("home"), ctx) is True
        assert evaluator.evaluate(PresenceCondition("away"), ctx) is False

    def test_user_active(self, evaluator):
        assert evaluator.evaluate(UserActiveCondition(), make_context(activity=0.5)) is True
        assert evaluator.evaluate(UserActiveCondition(), make_context(activity=0.0)) is False

    def test_user_active_inverted(self, evaluator):
        assert evaluator.evaluate(UserActiveCondition(active=False), make_context(activity=0.0))

    def test_user_active_false_requires_idle(self, evaluator):
        """value false is a requirement, not a disabled check."""
        condition = parse_condition({"type": "user_active", "value": False})

        assert evaluator.evaluate(condition, make_context(activity=0.0))
        assert not evaluator.evaluate(condition, make_context(activity=0.5))

    def test_day_of_week(self, evaluator):
        """Monday = 0, so Wednesday is 2."""
        ctx = make_context()
        assert evaluator.evaluate(DayOfWeekCondition(frozenset({0, 1, 2, 3, 4})), ctx)
        assert not evaluator.evaluate(DayOfWeekCondition(frozenset({5, 6})), ctx)

    def test_sunday_based_days_match_the_weekend(self, evaluator):
        """The "dayOfWeek" spelling counts from Sunday = 0."""
        weekend = parse_condition({"type": "dayOfWeek", "days": [0, 6]})
        saturday = make_context(datetime(2025, 1, 18, 10, 0, tzinfo=UTC))
        sunday = make_context(datetime(2025, 1, 19, 10, 0, tzinfo=UTC))
        monday = make_context(datetime(2025, 1, 20, 10, 0, tzinfo=UTC))

        assert evaluator.evaluate(weekend, saturday)
        assert evaluator.evaluate(weekend, sunday)
        assert not evaluator.evaluate(weekend, monday)

    def test_label_needs_trigger(self, evaluator):
        ctx = make_context()
        trigger = Trigger("label_change", "home", {"to_label": "relaxing"})

        assert evaluator.evaluate(LabelCondition("relaxing"), ctx, trigger)
        assert not evaluator.evaluate(LabelCondition("working"), ctx, trigger)
        assert not evaluator.evaluate(LabelCondition("relaxing"), ctx, None)

    def test_label_scoped_to_classifier(self, evaluator):
        ctx = make_context()
        activity = Trigger("activity_change", "home", {"to_label": "away", "classifier": "activity"})
        context = Trigger("presence_change", "home", {"to_label": "away", "classifier": "context"})
        condition = parse_condition({"type": "label", "value": "away", "classifier": "context"})

        assert evaluator.evaluate(condition, ctx, context)
        assert not evaluator.evaluate(condition, ctx, activity)
        assert evaluator.evaluate(LabelCondition("away"), ctx, activity)

    def test_unknown_condition_is_satisfied(self, evaluator, caplog):
        """Unknown conditions pass but are logged."""
        with caplog.at_level("WARNING"):
            assert evaluator.evaluate(UnknownCondition("weather"), make_context()) is True
        assert "weather" in caplog.text


class TestTimeRange:
    """Hour within [start, end], inclusive."""

    @pytest.mark.parametrize(
        "hour,expected", [(7, False), (8, True), (12, True), (18, True), (19, False)]
    )
    def test_normal_window(self, evaluator, hour, expected):
        ctx = make_context(T0.replace(hour=hour))
        assert evaluator.evaluate(TimeRangeCondition(8, 18), ctx) is expected

    @pytest.mark.parametrize(
        "hour,expected", [(21, False), (22, True), (23, True), (0, True), (6, True), (7, False)]
    )
    def test_midnight_spanning_window(self, evaluator, hour, expected):
        ctx = make_context(T0.replace(hour=hour))
        assert evaluator.evaluate(TimeRangeCondition(22, 6), ctx) is expected


class TestAwayOrInactive:
    """Away or idle for at least a duration, judged from context history."""

    def test_active_context_fails(self, evaluator):
        assert not evaluator.evaluate(AwayOrInactiveCondition(0), make_context(activity=0.5))

    def test_zero_duration(self, evaluator):
        assert evaluator.evaluate(AwayOrInactiveCondition(0), make_context(activity=0.0))

    def test_streak_long_enough(self, evaluator, history):
        for minutes in (40, 30, 20, 10):
            history.append_context(
                make_context(T0 - timedelta(minutes=minutes), status=PresenceStatus.AWAY)
            )
        ctx = make_context(status=PresenceStatus.AWAY)
        history.append_context(ctx)

        condition = AwayOrInactiveCondition(duration_ms=30 * 60 * 1000)
        assert evaluator.evaluate(condition, ctx, now=T0)

    def test_streak_broken_by_activity(self, evaluator, history):
        history.append_context(
            make_context(T0 - timedelta(minutes=40), status=PresenceStatus.AWAY)
        )
        history.append_context(make_context(T0 - timedelta(minutes=20), activity=0.8))
        history.append_context(
            make_context(T0 - timedelta(minutes=10), status=PresenceStatus.AWAY)
        )
        ctx = make_context(status=PresenceStatus.AWAY)

        condition = AwayOrInactiveCondition(duration_ms=30 * 60 * 1000)
        assert not evaluator.evaluate(condition, ctx, now=T0)

    def test_without_history_uses_now(self):
        """Without history the streak starts at the current context."""
        evaluator = ConditionEvaluator()
        ctx = make_context(status=PresenceStatus.AWAY)
        condition = AwayOrInactiveCondition(duration_ms=60000)

        assert not evaluator.evaluate(condition, ctx, now=T0)
        assert evaluator.evaluate(condition, ctx, now=T0 + timedelta(minutes=1))


class TestEvaluateAll:
    def test_all_must_pass(self, evaluator):
        ctx = make_context()
        assert evaluator.evaluate_all([PresenceCondition("home"), UserActiveCondition()], ctx)
        assert not evaluator.evaluate_all([PresenceCondition("home"), PresenceCondition("away")], ctx)

    def test_empty_list_passes(self, evaluator):
        assert evaluator.evaluate_all([], make_context())

    def test_short_circuits(self, evaluator, caplog):
        """Conditions after the first failure are not evaluated."""
        with caplog.at_level("WARNING"):
            result = evaluator.evaluate_all(
                [PresenceCondition("away"), UnknownCondition("never_checked")], make_context()
            )
        assert result is False
        assert "never_checked" not in caplog.text
