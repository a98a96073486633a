# src/permission_bridge/store/memory_store.py
import copy
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .base_store import (
    Document,
    DocumentData,
    DocumentStore,
    collection_path,
    document_path,
    split_path,
)
from ..protocol.errors import AccessDenied, DocumentNotFound


@dataclass(frozen=True)
class RuleRequest:
    path: str
    operation: str
    auth: Optional[Dict[str, Any]] = None
    data: Optional[DocumentData] = None

    @property
    def uid(self) -> Optional[str]:
        if not self.auth:
            return None
        return self.auth.get("uid")


Rules = Callable[[RuleRequest], bool]


def allow_all(request: RuleRequest) -> bool:
    return True


def user_scoped_rules(root: str = "users") -> Rules:
    """
    Only the signed-in user may touch `{root}/{uid}/...`.
    Everything outside `root` is readable by anyone signed in, never writable.
    """

    def rules(request: RuleRequest) -> bool:
        if request.uid is None:
            return False
        segments = split_path(request.path)
        if segments[0] == root:
            return len(segments) >= 2 and segments[1] == request.uid
        return request.operation in ("get", "list")

    return rules


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed store that checks every request against `rules` first.
    Stored and returned data are deep copies.
    """

    def __init__(self, rules: Rules = allow_all, auth: Optional[Dict[str, Any]] = None):
        self.rules = rules
        self.auth = auth
        self._docs: Dict[str, DocumentData] = {}

    def sign_in(self, uid: str, **claims: Any) -> None:
        self.auth = dict(claims, uid=uid)

    def sign_out(self) -> None:
        self.auth = None

    def _check(self, path: str, operation: str, data: Optional[DocumentData] = None) -> None:
        request = RuleRequest(path=path, operation=operation, auth=self.auth, data=data)
        if not self.rules(request):
            raise AccessDenied(path, operation)

    async def get(self, path: str) -> Optional[DocumentData]:
        path = document_path(path)
        self._check(path, "get")
        doc = self._docs.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    async def list(self, collection: str) -> List[Document]:
        collection = collection_path(collection)
        self._check(collection, "list")
        depth = len(split_path(collection)) + 1
        prefix = collection + "/"
        out: List[Document] = []
        for path, data in self._docs.items():
            if path.startswith(prefix) and len(split_path(path)) == depth:
                out.append(Document(id=path.rsplit("/", 1)[-1], path=path, data=copy.deepcopy(data)))
        return out

    async def create(self, collection: str, data: DocumentData) -> str:
        collection = collection_path(collection)
        self._check(collection, "create", data)
        doc_id = uuid.uuid4().hex[:20]
        self._docs["{}/{}".format(collection, doc_id)] = copy.deepcopy(data)
        return doc_id

    async def set(self, path: str, data: DocumentData) -> None:
        path = document_path(path)
        self._check(path, "write", data)
        self._docs[path] = copy.deepcopy(data)

    async def update(self, path: str, data: DocumentData) -> None:
        path = document_path(path)
        self._check(path, "update", data)
        if path not in self._docs:
            raise DocumentNotFound(path, "update")
        self._docs[path].update(copy.deepcopy(data))

    async def delete(self, path: str) -> None:
        path = document_path(path)
        self._check(path, "delete")
        self._docs.pop(path, None)
