# src/permission_bridge/components/error_listener.py
import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .base import Component
from ..core.event_bus import EventBus, Subscription
from ..protocol import events_v1
from ..protocol.errors import ListenerPayloadError

logger = logging.getLogger(__name__)


class ListenerState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    UNMOUNTED = "unmounted"


@dataclass(frozen=True)
class ListenerResult:
    """Outcome of one render opportunity: either nothing to report, or one error."""
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            # the same instance is raised on every render; start from a clean traceback
            error = self.error.with_traceback(None)
            raise error from error.__cause__


class ErrorListener(Component):
    """
    Invisible component that listens for errors published on one channel
    (permission-error by default) and throws the latest one on its next render,
    so the enclosing ErrorBoundary can catch it.

    - renders nothing while idle
    - a second event before the next render replaces the first one
    - unmounting drops any pending error and unsubscribes
    """

    def __init__(self, event_bus: EventBus, channel: str = events_v1.PERMISSION_ERROR):
        super().__init__()
        self.event_bus = event_bus
        self.channel = channel
        self._error: Optional[BaseException] = None
        self._subscription: Optional[Subscription] = None

    @property
    def state(self) -> ListenerState:
        if not self.mounted:
            return ListenerState.UNMOUNTED
        if self._error is not None:
            return ListenerState.PENDING
        return ListenerState.IDLE

    @property
    def pending_error(self) -> Optional[BaseException]:
        return self._error

    def on_mount(self) -> None:
        self._subscription = self.event_bus.subscribe(self.channel, self._handle_event)

    def on_unmount(self) -> None:
        try:
            if self._subscription is not None:
                self._subscription.cancel()
        finally:
            self._subscription = None
            self._error = None

    def _handle_event(self, payload: Any) -> None:
        # publish() may still be walking a snapshot that includes us after unmount
        if not self.mounted:
            return

        error = payload if isinstance(payload, BaseException) else ListenerPayloadError(self.channel, payload)
        if self._error is not None:
            logger.warning(
                "[ErrorListener] %s: replacing pending %s with %s",
                self.channel,
                type(self._error).__name__,
                type(error).__name__,
            )
        self._error = error
        self.request_render()

    def check(self) -> ListenerResult:
        if not self.mounted:
            return ListenerResult()
        return ListenerResult(error=self._error)

    def render(self) -> None:
        self.check().raise_for_error()
        return None
