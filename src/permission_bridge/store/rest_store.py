# src/permission_bridge/store/rest_store.py
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .base_store import (
    Document,
    DocumentData,
    DocumentStore,
    collection_path,
    document_path,
)
from ..protocol.errors import AccessDenied, DocumentNotFound, StoreError

logger = logging.getLogger(__name__)


class RestDocumentStore(DocumentStore):
    """
    Document store backed by a REST API:

        GET    {base}/documents/{doc}          -> {"data": {...}}      (404 = missing)
        GET    {base}/documents/{collection}   -> {"documents": [{"id", "data"}, ...]}
        POST   {base}/documents/{collection}   -> {"id": "..."}
        PUT    {base}/documents/{doc}
        PATCH  {base}/documents/{doc}                                  (404 = missing)
        DELETE {base}/documents/{doc}

    HTTP 403 is reported as AccessDenied, anything else non-2xx as StoreError.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout_sec: float = 10.0):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_sec = timeout_sec
        self._http_session: Optional[aiohttp.ClientSession] = None

    async def _get_http_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout_sec)
            self._http_session = aiohttp.ClientSession(timeout=timeout)
        return self._http_session

    async def close(self) -> None:
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        payload: Optional[DocumentData] = None,
        missing_ok: bool = False,
    ) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/documents/{path}"
        session = await self._get_http_session()
        kwargs: Dict[str, Any] = {"headers": self._headers()}
        if payload is not None:
            kwargs["json"] = payload

        async with session.request(method, url, **kwargs) as resp:
            if resp.status == 403:
                raise AccessDenied(path, operation)
            if resp.status == 404:
                if missing_ok:
                    return None
                raise DocumentNotFound(path, operation)
            if resp.status >= 300:
                body = await resp.text()
                logger.error("[RestDocumentStore] %s %s HTTP %s: %s", method, url, resp.status, body[:500])
                raise StoreError(f"HTTP {resp.status} on {operation} {path}", path=path, operation=operation)
            if resp.status == 204 or resp.content_length == 0:
                return {}
            try:
                return await resp.json()
            except (aiohttp.ContentTypeError, ValueError) as exc:
                raise StoreError(
                    f"Invalid JSON in response to {operation} {path}", path=path, operation=operation
                ) from exc

    async def get(self, path: str) -> Optional[DocumentData]:
        path = document_path(path)
        body = await self._request("GET", path, "get", missing_ok=True)
        if body is None:
            return None
        return body.get("data") or {}

    async def list(self, collection: str) -> List[Document]:
        collection = collection_path(collection)
        body = await self._request("GET", collection, "list") or {}
        out: List[Document] = []
        for item in body.get("documents") or []:
            doc_id = item.get("id")
            if not doc_id:
                continue
            out.append(Document(id=doc_id, path=f"{collection}/{doc_id}", data=item.get("data") or {}))
        return out

    async def create(self, collection: str, data: DocumentData) -> str:
        collection = collection_path(collection)
        body = await self._request("POST", collection, "create", payload=data) or {}
        doc_id = body.get("id")
        if not doc_id:
            raise StoreError(f"No id returned for create {collection}", path=collection, operation="create")
        return doc_id

    async def set(self, path: str, data: DocumentData) -> None:
        path = document_path(path)
        await self._request("PUT", path, "write", payload=data)

    async def update(self, path: str, data: DocumentData) -> None:
        path = document_path(path)
        await self._request("PATCH", path, "update", payload=data)

    async def delete(self, path: str) -> None:
        path = document_path(path)
        await self._request("DELETE", path, "delete", missing_ok=True)
