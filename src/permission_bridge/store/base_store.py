# src/permission_bridge/store/base_store.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DocumentData = Dict[str, Any]


@dataclass
class Document:
    id: str
    path: str
    data: DocumentData = field(default_factory=dict)


def split_path(path: str) -> List[str]:
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments:
        raise ValueError("Empty path")
    return segments


def document_path(path: str) -> str:
    segments = split_path(path)
    if len(segments) % 2 != 0:
        raise ValueError("Not a document path (odd number of segments): {!r}".format(path))
    return "/".join(segments)


def collection_path(path: str) -> str:
    segments = split_path(path)
    if len(segments) % 2 != 1:
        raise ValueError("Not a collection path (even number of segments): {!r}".format(path))
    return "/".join(segments)


class DocumentStore(ABC):
    """
    Abstract async document store.
    Implementations raise AccessDenied when a request is rejected by the backend.
    """

    @abstractmethod
    async def get(self, path: str) -> Optional[DocumentData]:
        ...

    @abstractmethod
    async def list(self, collection: str) -> List[Document]:
        ...

    @abstractmethod
    async def create(self, collection: str, data: DocumentData) -> str:
        ...

    @abstractmethod
    async def set(self, path: str, data: DocumentData) -> None:
        ...

    @abstractmethod
    async def update(self, path: str, data: DocumentData) -> None:
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        ...

    async def close(self) -> None:
        return None
