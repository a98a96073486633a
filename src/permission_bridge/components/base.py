# src/permission_bridge/components/base.py
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol


class RenderHost(Protocol):
    def invalidate(self) -> None:
        ...


class Component(ABC):
    """
    Abstract render-tree node.
    Subclasses hook into on_mount()/on_unmount() and produce output in render().
    """

    def __init__(self):
        self._host: Optional[RenderHost] = None
        self._mounted = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    def mount(self, host: Optional[RenderHost] = None) -> None:
        if self._mounted:
            return
        self._host = host
        self._mounted = True
        self.on_mount()

    def unmount(self) -> None:
        # runs on_unmount() at most once per mount
        if not self._mounted:
            return
        self._mounted = False
        try:
            self.on_unmount()
        finally:
            self._host = None

    def request_render(self) -> None:
        if self._mounted and self._host is not None:
            self._host.invalidate()

    def on_mount(self) -> None:
        pass

    def on_unmount(self) -> None:
        pass

    @abstractmethod
    def render(self) -> Any:
        ...
