#!/usr/bin/env python3
"""
Quick example demonstrating home-ambient basic usage.

This example demonstrates:
1. Wiring an AmbientEngine to a mock signal source and mock providers
2. Seeded arrive/leave presets and a custom templated rule
3. Classifier transitions driving rules
4. Mining a pattern and promoting it to a rule

Run with: PYTHONPATH=src python3 example.py
"""

import asyncio
import logging
from datetime import datetime, timedelta, UTC

from home_ambient.core import AmbientEngine, EngineConfig, EventFilter
from home_ambient.modules.automation import (
    MockClimateController,
    MockDeviceController,
    MockNotifier,
    MockSceneActivator,
)
from home_ambient.modules.context import MockSignalSource, Presence, PresenceStatus


async def main():
    print("=" * 60)
    print("home-ambient Example")
    print("=" * 60)

    # 1. Engine and providers
    print("\n1. Creating engine...")
    source = MockSignalSource()
    start = datetime(2025, 1, 15, 7, 30, tzinfo=UTC)
    source.set_current_time(start)
    source.set_presence(Presence(PresenceStatus.HOME, occupant_count=2, confidence=1.0))

    notifier = MockNotifier()
    climate = MockClimateController()
    engine = AmbientEngine(
        source,
        devices=MockDeviceController(),
        scenes=MockSceneActivator(),
        notifier=notifier,
        climate=climate,
        config=EngineConfig(min_pattern_samples=10),
    )
    engine.bus.subscribe(
        lambda e: print(f"   ⚡ {e.type}: {e.payload.get('rule_name') or e.payload.get('to_label')}"),
        EventFilter(event_type="rule.executed"),
    )
    await engine.start(run_timers=False)
    print(f"   ✓ Started with rules: {[r.id for r in engine.list_rules()]}")

    # 2. Custom rule with a template
    print("\n2. Adding a custom rule...")
    rule = await engine.add_rule(
        {
            "trigger": "arrive",
            "zone": "office",
            "actions": [{"type": "sendNotification", "message": "{user} reached the office"}],
        }
    )
    print(f"   ✓ Added {rule.name} ({rule.id})")

    # 3. Geofence triggers
    print("\n3. Submitting triggers...")
    summary = await engine.submit_trigger("depart", "home", {"userId": "erik"})
    print(f"   ✓ depart@home: {summary.executed}/{summary.matched} executed, climate={climate.mode}")
    summary = await engine.submit_trigger("arrive", "office", {"userId": "erik"})
    print(f"   ✓ arrive@office: {summary.executed}/{summary.matched} executed")

    # 4. Classification ticks
    print("\n4. Sampling and classifying...")
    for minute in range(0, 12):
        source.set_current_time(start + timedelta(minutes=minute))
        result = await engine.sample_and_classify()
    print(f"   ✓ Current label: {result.label} ({round(result.confidence * 100)}%)")
    print(f"   ✓ Transitions: {len(engine.get_transitions())}")

    # 5. Mining and promotion
    print("\n5. Mining patterns...")
    patterns = await engine.mine_patterns()
    for pattern in patterns:
        print(f"   ✓ {pattern.id}: {round(pattern.confidence * 100)}% of {pattern.sample_size}")
    if patterns:
        promoted = await engine.promote_pattern(
            patterns[0].id, [{"type": "notify", "message": "Back to {to_label}"}]
        )
        print(f"   ✓ Promoted to rule {promoted.name}")

    # 6. Results
    print("\n6. Results...")
    stats = engine.get_statistics()
    print(f"   ✓ Statistics: {stats.to_dict()}")
    for body in notifier.bodies:
        print(f"   ✉ {body}")

    await engine.shutdown()
    print("\n" + "=" * 60)
    print("✅ Example complete")
    print("=" * 60)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(main())
