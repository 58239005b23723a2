"""Tests for the event bus."""

from slotflow.core.events import (
    Event,
    EventBus,
    EventType,
    feature_ended_event,
    feature_started_event,
)


class TestEventBus:
    """Subscription, dispatch and history."""

    def test_subscribe_and_unsubscribe(self):
        """Handlers receive their type until unsubscribed"""
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe(EventType.GAME_WIN, received.append)

        bus.emit(Event(EventType.GAME_WIN, data={"amount": 5}))
        bus.emit(Event(EventType.BIG_WIN_SHOW))
        unsubscribe()
        bus.emit(Event(EventType.GAME_WIN))

        assert len(received) == 1
        assert received[0].data["amount"] == 5
        assert bus.handler_count(EventType.GAME_WIN) == 0

    def test_subscribe_all_sees_every_type(self):
        """Global handlers receive every fact"""
        bus = EventBus()
        received = []
        bus.subscribe_all(received.append)

        bus.emit(Event(EventType.STEP_PRESENTED))
        bus.emit(Event("custom-fact"))

        assert [e.type for e in received] == [EventType.STEP_PRESENTED, "custom-fact"]

    def test_failing_handler_does_not_block_others(self):
        """A raising handler is logged and later handlers still run"""
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("handler failed")

        bus.subscribe(EventType.GAME_WIN, broken)
        bus.subscribe(EventType.GAME_WIN, received.append)
        bus.emit(Event(EventType.GAME_WIN))

        assert len(received) == 1

    def test_handlers_run_in_subscription_order(self):
        """Typed handlers and global handlers run in the order they were added"""
        bus = EventBus()
        received = []

        bus.subscribe(EventType.GAME_WIN, lambda e: received.append("typed"))
        bus.subscribe_all(lambda e: received.append("global"))
        bus.emit(Event(EventType.GAME_WIN))

        assert received == ["typed", "global"]

    def test_history_is_bounded(self):
        """History keeps only the most recent events"""
        bus = EventBus(history_limit=3)
        for i in range(5):
            bus.emit(Event(EventType.STEP_PRESENTED, data={"i": i}))

        history = bus.get_history(limit=10)
        assert [e.data["i"] for e in history] == [2, 3, 4]

        bus.clear_history()
        assert bus.get_history() == []

    def test_clear_drops_subscriptions(self):
        """clear() removes every handler"""
        bus = EventBus()
        bus.subscribe(EventType.GAME_WIN, lambda e: None)
        bus.subscribe_all(lambda e: None)
        assert bus.handler_count() == 2

        bus.clear()
        assert bus.handler_count() == 0

    def test_events_are_timestamped(self):
        """Events carry a wall-clock timestamp"""
        assert Event(EventType.GAME_WIN).timestamp > 1_000_000_000


class TestFeatureEvents:
    """Inbound feature fact factories."""

    def test_ids_only_when_given(self):
        """Flow identity keys are present only when provided"""
        started = feature_started_event(spin_id="round-1")
        ended = feature_ended_event()

        assert started.type == EventType.FEATURE_STARTED
        assert started.data == {"spin_id": "round-1"}
        assert ended.type == EventType.FEATURE_ENDED
        assert ended.data == {}
