from dataclasses import dataclass

from utils.events import EventBus


@dataclass
class Ping:
    n: int


@dataclass
class Pong:
    n: int


def test_failing_handler_is_isolated():
    bus = EventBus()
    seen = []

    def first(event):
        seen.append(("first", event.n))

    def explode(event):
        raise RuntimeError("boom")

    def last(event):
        seen.append(("last", event.n))

    for handler in (first, explode, last):
        bus.subscribe(Ping, handler)

    assert bus.publish(Ping(1)) == ["explode"]
    assert seen == [("first", 1), ("last", 1)]


def test_handlers_only_receive_their_event_type():
    bus = EventBus()
    seen = []
    bus.subscribe(Ping, seen.append)

    assert bus.publish(Pong(2)) == []
    assert seen == []
