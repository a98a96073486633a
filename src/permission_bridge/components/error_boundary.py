# src/permission_bridge/components/error_boundary.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .base import Component
from ..core.event_bus import EventBus
from ..protocol import events_v1

logger = logging.getLogger(__name__)

ComponentFactory = Callable[[], Component]


@dataclass(frozen=True)
class Fallback:
    boundary: str
    error: BaseException

    @property
    def message(self) -> str:
        return str(self.error)


class ErrorBoundary:
    """
    Root of a small render tree.

    Children ask for a render through invalidate(); the render pass runs on the
    next turn of the running asyncio loop, never on the caller's stack. The first
    exception a child raises while rendering is caught here: every child is
    unmounted, a Fallback is kept and announced on the boundary-fallback channel.
    reset() builds fresh children and goes back to normal rendering.
    """

    def __init__(self, event_bus: EventBus, children: Sequence[ComponentFactory], name: str = "root"):
        self.event_bus = event_bus
        self.name = name
        self._factories: List[ComponentFactory] = list(children)
        self._children: List[Component] = []
        self._fallback: Optional[Fallback] = None
        self._mounted = False
        self._dirty = False
        self._render_handle: Optional[asyncio.Handle] = None

    @property
    def children(self) -> List[Component]:
        return list(self._children)

    @property
    def fallback(self) -> Optional[Fallback]:
        return self._fallback

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def dirty(self) -> bool:
        return self._dirty

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self._mount_children()
        logger.debug("[ErrorBoundary] %s mounted with %d child(ren)", self.name, len(self._children))

    def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        self._cancel_scheduled_render()
        self._unmount_children()
        # the next mount is a fresh tree
        self._fallback = None
        self._dirty = False
        logger.debug("[ErrorBoundary] %s unmounted", self.name)

    def reset(self) -> None:
        """Drop the fallback and remount fresh children."""
        self._unmount_children()
        self._fallback = None
        self._dirty = False
        if self._mounted:
            self._mount_children()
        logger.info("[ErrorBoundary] %s reset", self.name)
        self.event_bus.publish(events_v1.LIFECYCLE, events_v1.boundary_reset(self.name))

    def _mount_children(self) -> None:
        for factory in self._factories:
            child = factory()
            child.mount(self)
            self._children.append(child)

    def _unmount_children(self) -> None:
        children, self._children = self._children, []
        for child in children:
            child.unmount()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def invalidate(self) -> None:
        if not self._mounted:
            return
        self._dirty = True
        if self._render_handle is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop: the owner renders explicitly
            return
        self._render_handle = loop.call_soon(self._scheduled_render)

    def _cancel_scheduled_render(self) -> None:
        if self._render_handle is not None:
            self._render_handle.cancel()
            self._render_handle = None

    def _scheduled_render(self) -> None:
        self._render_handle = None
        if self._mounted and self._dirty:
            self.render()

    def render(self) -> Optional[Fallback]:
        self._dirty = False
        if self._fallback is not None:
            return self._fallback

        for child in list(self._children):
            try:
                child.render()
            except Exception as exc:
                return self._show_fallback(exc)
        return None

    def _show_fallback(self, error: BaseException) -> Fallback:
        self._unmount_children()
        self._cancel_scheduled_render()
        self._fallback = Fallback(boundary=self.name, error=error)
        logger.error("[ErrorBoundary] %s caught %s: %s", self.name, type(error).__name__, error)
        self.event_bus.publish(events_v1.BOUNDARY_FALLBACK, events_v1.boundary_fallback(self.name, error))
        return self._fallback
