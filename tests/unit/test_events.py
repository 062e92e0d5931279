"""Unit tests for the event bus."""

from __future__ import annotations

from pinyin_typing.events import EventBus, HealthChanged, InputChanged, KeyPressed


def test_publish_dispatches_by_exact_type() -> None:
    bus = EventBus()
    seen: list[object] = []
    bus.subscribe(KeyPressed, seen.append)

    bus.publish(KeyPressed("a"))
    bus.publish(InputChanged("a"))

    assert seen == [KeyPressed("a")]


def test_subscribe_all_receives_every_event_and_unsubscribe_stops_delivery() -> None:
    bus = EventBus()
    seen: list[object] = []
    unsubscribe = bus.subscribe_all(seen.append)

    bus.publish(KeyPressed("a"))
    unsubscribe()
    bus.publish(KeyPressed("b"))

    assert seen == [KeyPressed("a")]


def test_health_changed_low_health_flag() -> None:
    assert HealthChanged(2, 5).is_low
    assert HealthChanged(1, 5).is_low
    assert not HealthChanged(0, 5).is_low
    assert not HealthChanged(3, 5).is_low
