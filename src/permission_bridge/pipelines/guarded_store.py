# src/permission_bridge/pipelines/guarded_store.py
import logging
from typing import Any, Dict, List, Optional

from ..core.event_bus import EventBus
from ..protocol import events_v1
from ..protocol.errors import AccessDenied
from ..store.base_store import Document, DocumentData, DocumentStore

logger = logging.getLogger(__name__)


class GuardedStore(DocumentStore):
    """
    Orchestrates: DocumentStore call -> permission-error event on EventBus.

    A denied request is published as a StorePermissionError right away, then the
    original AccessDenied is re-raised so the caller can still clean up its own
    state. Callers should not show their own error toast for AccessDenied; the
    error boundary takes care of it.
    """

    def __init__(
        self,
        event_bus: EventBus,
        store: DocumentStore,
        channel: str = events_v1.PERMISSION_ERROR,
    ):
        self.event_bus = event_bus
        self.store = store
        self.channel = channel

    def _report(self, exc: AccessDenied, data: Optional[DocumentData] = None) -> None:
        auth: Optional[Dict[str, Any]] = getattr(self.store, "auth", None)
        error = events_v1.permission_error(
            path=exc.path or "",
            operation=exc.operation or "",
            request_resource_data=data,
            auth=auth,
            cause=exc,
        )
        logger.info("[GuardedStore] %s denied on %s", exc.operation, exc.path)
        self.event_bus.publish(self.channel, error)

    async def get(self, path: str) -> Optional[DocumentData]:
        try:
            return await self.store.get(path)
        except AccessDenied as exc:
            self._report(exc)
            raise

    async def list(self, collection: str) -> List[Document]:
        try:
            return await self.store.list(collection)
        except AccessDenied as exc:
            self._report(exc)
            raise

    async def create(self, collection: str, data: DocumentData) -> str:
        try:
            return await self.store.create(collection, data)
        except AccessDenied as exc:
            self._report(exc, data)
            raise

    async def set(self, path: str, data: DocumentData) -> None:
        try:
            await self.store.set(path, data)
        except AccessDenied as exc:
            self._report(exc, data)
            raise

    async def update(self, path: str, data: DocumentData) -> None:
        try:
            await self.store.update(path, data)
        except AccessDenied as exc:
            self._report(exc, data)
            raise

    async def delete(self, path: str) -> None:
        try:
            await self.store.delete(path)
        except AccessDenied as exc:
            self._report(exc)
            raise

    async def close(self) -> None:
        await self.store.close()
