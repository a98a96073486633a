import logging
import traceback

import pytest

from permission_bridge.components.error_listener import ErrorListener, ListenerState
from permission_bridge.core.event_bus import EventBus
from permission_bridge.protocol import events_v1
from permission_bridge.protocol.errors import ListenerPayloadError, StorePermissionError


class _Host:
    def __init__(self):
        self.invalidations = 0

    def invalidate(self):
        self.invalidations += 1


def _mounted_listener(bus, host=None):
    listener = ErrorListener(bus)
    listener.mount(host)
    return listener


def test_idle_listener_renders_nothing():
    bus = EventBus()
    listener = _mounted_listener(bus)

    assert listener.state is ListenerState.IDLE
    assert listener.render() is None
    assert listener.check().ok
    assert bus.subscriber_count(events_v1.PERMISSION_ERROR) == 1


def test_event_is_raised_on_next_render_not_during_publish():
    bus = EventBus()
    host = _Host()
    listener = _mounted_listener(bus, host)
    error = events_v1.permission_error("users/42/todos", "read")

    bus.publish(events_v1.PERMISSION_ERROR, error)

    assert listener.state is ListenerState.PENDING
    assert host.invalidations == 1
    with pytest.raises(StorePermissionError) as excinfo:
        listener.render()
    assert excinfo.value is error
    assert "users/42/todos" in str(excinfo.value)
    assert "read" in str(excinfo.value)


def test_pending_is_terminal():
    bus = EventBus()
    listener = _mounted_listener(bus)
    bus.publish(events_v1.PERMISSION_ERROR, events_v1.permission_error("stories", "create"))

    for _ in range(2):
        with pytest.raises(StorePermissionError):
            listener.render()
    assert listener.state is ListenerState.PENDING


def test_check_returns_error_as_value():
    bus = EventBus()
    listener = _mounted_listener(bus)
    error = events_v1.permission_error("stories", "create")
    bus.publish(events_v1.PERMISSION_ERROR, error)

    result = listener.check()

    assert not result.ok
    assert result.error is error
    with pytest.raises(StorePermissionError):
        result.raise_for_error()


def test_unmount_suppresses_pending_error_and_unsubscribes():
    bus = EventBus()
    listener = _mounted_listener(bus)
    bus.publish(events_v1.PERMISSION_ERROR, events_v1.permission_error("users/1", "get"))

    listener.unmount()

    assert listener.state is ListenerState.UNMOUNTED
    assert listener.render() is None
    assert listener.pending_error is None
    assert bus.subscriber_count(events_v1.PERMISSION_ERROR) == 0


def test_unmount_twice_is_safe():
    bus = EventBus()
    listener = _mounted_listener(bus)
    listener.unmount()
    listener.unmount()
    assert bus.subscriber_count(events_v1.PERMISSION_ERROR) == 0


def test_unmount_during_in_flight_publish_ignores_the_event():
    bus = EventBus()
    listener = ErrorListener(bus)
    # registered before the listener, so it runs first and tears it down mid-publish
    bus.subscribe(events_v1.PERMISSION_ERROR, lambda payload: listener.unmount())
    listener.mount()

    bus.publish(events_v1.PERMISSION_ERROR, events_v1.permission_error("users/1", "get"))

    assert listener.state is ListenerState.UNMOUNTED
    assert listener.render() is None


def test_no_delivery_after_unmount_returns():
    bus = EventBus()
    host = _Host()
    listener = ErrorListener(bus)
    listener.mount(host)

    def teardown(payload):
        listener.unmount()

    # listener was subscribed first, so it receives this event before teardown runs
    bus.subscribe(events_v1.PERMISSION_ERROR, teardown)
    bus.publish(events_v1.PERMISSION_ERROR, events_v1.permission_error("a/b", "get"))
    bus.publish(events_v1.PERMISSION_ERROR, events_v1.permission_error("c/d", "get"))

    assert host.invalidations == 1
    assert listener.render() is None


def test_second_event_overwrites_pending(caplog):
    bus = EventBus()
    host = _Host()
    listener = _mounted_listener(bus, host)
    first = events_v1.permission_error("users/1/todos", "list")
    second = events_v1.permission_error("users/2/todos", "update")

    bus.publish(events_v1.PERMISSION_ERROR, first)
    assert listener.pending_error is first
    with caplog.at_level(logging.WARNING):
        bus.publish(events_v1.PERMISSION_ERROR, second)

    assert host.invalidations == 2
    assert "replacing pending" in caplog.text
    with pytest.raises(StorePermissionError) as excinfo:
        listener.render()
    assert excinfo.value is second


def test_non_exception_payload_is_wrapped():
    bus = EventBus()
    listener = _mounted_listener(bus)

    bus.publish(events_v1.PERMISSION_ERROR, {"resource": "users/42/todos", "op": "read"})

    with pytest.raises(ListenerPayloadError) as excinfo:
        listener.render()
    assert excinfo.value.payload == {"resource": "users/42/todos", "op": "read"}
    assert "users/42/todos" in str(excinfo.value)
    assert "read" in str(excinfo.value)


def test_custom_channel():
    bus = EventBus()
    listener = ErrorListener(bus, channel="quota-error")
    listener.mount()

    bus.publish(events_v1.PERMISSION_ERROR, RuntimeError("ignored"))
    assert listener.render() is None

    bus.publish("quota-error", RuntimeError("over quota"))
    with pytest.raises(RuntimeError, match="over quota"):
        listener.render()


def test_two_listeners_raise_independently():
    bus = EventBus()
    a = _mounted_listener(bus)
    b = _mounted_listener(bus)
    error = events_v1.permission_error("users/42/todos", "read")

    bus.publish(events_v1.PERMISSION_ERROR, error)

    with pytest.raises(StorePermissionError):
        a.render()
    with pytest.raises(StorePermissionError):
        b.render()


def test_repeated_render_does_not_grow_traceback():
    bus = EventBus()
    listener = _mounted_listener(bus)
    bus.publish(events_v1.PERMISSION_ERROR, events_v1.permission_error("stories", "create"))

    depths = []
    for _ in range(3):
        with pytest.raises(StorePermissionError) as excinfo:
            listener.render()
        depths.append(len(traceback.extract_tb(excinfo.value.__traceback__)))

    assert depths[0] == depths[1] == depths[2]


def test_render_inside_handler_keeps_cause_and_drops_context():
    bus = EventBus()
    listener = _mounted_listener(bus)
    cause = PermissionError("denied upstream")
    bus.publish(events_v1.PERMISSION_ERROR, events_v1.permission_error("stories", "create", cause=cause))

    with pytest.raises(StorePermissionError) as excinfo:
        try:
            raise KeyError("unrelated")
        except KeyError:
            listener.render()

    assert excinfo.value.__cause__ is cause
    assert excinfo.value.__suppress_context__
