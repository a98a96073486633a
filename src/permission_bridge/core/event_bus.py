# src/permission_bridge/core/event_bus.py
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Payload = Any
Subscriber = Callable[[Payload], None]


class _Registration:
    __slots__ = ("fn", "active")

    def __init__(self, fn: Subscriber):
        self.fn = fn
        self.active = True


class Subscription:
    """
    Handle returned by EventBus.subscribe().
    Keep it around to unsubscribe without holding on to the callback itself.
    """

    def __init__(self, bus: "EventBus", channel: str, registration: _Registration):
        self.bus = bus
        self.channel = channel
        self._registration = registration

    @property
    def fn(self) -> Subscriber:
        return self._registration.fn

    @property
    def active(self) -> bool:
        return self._registration.active

    def cancel(self) -> None:
        self.bus._remove(self.channel, self._registration)

    def __repr__(self) -> str:
        return "Subscription(channel={!r}, fn={!r})".format(self.channel, self.fn)


class EventBus:
    """
    Simple in-process pub/sub bus, keyed by channel name.
    Data-access code publishes here, components (error listener, WS server) listen.

    Everything runs on the caller's thread. publish() iterates over a copy of
    the channel's registrations, so callbacks may subscribe/unsubscribe freely
    while an event is being delivered. A callback subscribed during a publish
    waits for the next one; a callback unsubscribed during a publish is not
    called for the rest of it.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[_Registration]] = {}

    def subscribe(self, channel: str, fn: Subscriber) -> Subscription:
        registration = _Registration(fn)
        self._subscribers.setdefault(channel, []).append(registration)
        return Subscription(self, channel, registration)

    def unsubscribe(self, channel: str, fn: Subscriber) -> None:
        """
        Remove the first registration of `fn` under `channel`.
        Unknown channels or callbacks are ignored.
        """
        for registration in self._subscribers.get(channel, ()):
            # == rather than `is`: bound methods are rebuilt on every attribute access
            if registration.fn == fn:
                self._remove(channel, registration)
                return

    def _remove(self, channel: str, registration: _Registration) -> None:
        registration.active = False
        registrations = self._subscribers.get(channel)
        if not registrations:
            return
        for i, registered in enumerate(registrations):
            if registered is registration:
                del registrations[i]
                break
        if not registrations:
            del self._subscribers[channel]

    def publish(self, channel: str, payload: Payload) -> None:
        registrations = self._subscribers.get(channel)
        if not registrations:
            return
        for registration in list(registrations):
            if not registration.active:
                continue
            try:
                registration.fn(payload)
            except Exception:
                logger.exception("[EventBus] subscriber %r failed on channel %r", registration.fn, channel)

    emit = publish

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def channels(self) -> List[str]:
        return list(self._subscribers)
