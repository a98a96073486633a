# src/permission_bridge/core/app.py
from typing import Optional

from .config import BridgeConfig
from .event_bus import EventBus
from ..components.error_boundary import ErrorBoundary
from ..components.error_listener import ErrorListener
from ..pipelines.guarded_store import GuardedStore
from ..protocol import events_v1
from ..store.base_store import DocumentStore


class App:
    """
    Owns the process-wide event bus and the root error boundary.
    The boundary holds one ErrorListener on config.channel; data access goes
    through the GuardedStore built by attach_store().
    """

    def __init__(self, app_id: str, config: Optional[BridgeConfig] = None, event_bus: Optional[EventBus] = None):
        self.app_id = app_id
        self.config = config or BridgeConfig()
        self.event_bus = event_bus or EventBus()
        self.boundary = ErrorBoundary(
            self.event_bus,
            children=[self._make_listener],
            name=app_id,
        )
        self._store: Optional[GuardedStore] = None
        self._active = False

    def _make_listener(self) -> ErrorListener:
        return ErrorListener(self.event_bus, channel=self.config.channel)

    def attach_store(self, store: DocumentStore) -> GuardedStore:
        """
        Wrap a document store so denied requests are reported on the bus.
        """
        self._store = GuardedStore(self.event_bus, store, channel=self.config.channel)
        return self._store

    @property
    def store(self) -> GuardedStore:
        assert self._store is not None, "Document store not attached"
        return self._store

    @property
    def active(self) -> bool:
        return self._active

    async def start(self) -> None:
        self.boundary.mount()
        self._active = True
        self.event_bus.emit(events_v1.LIFECYCLE, events_v1.app_started(self.app_id, self.config.to_public_dict()))

    async def stop(self) -> None:
        self.boundary.unmount()
        if self._store:
            await self._store.close()
        self._active = False
        self.event_bus.emit(events_v1.LIFECYCLE, events_v1.app_stopped(self.app_id))
