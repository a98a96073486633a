# src/permission_bridge/protocol/errors.py
import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

PERMISSION_DENIED_PREFIX = (
    "Missing or insufficient permissions: "
    "The following request was denied by security rules:"
)


class StoreError(Exception):
    """Base class for failures reported by a document store."""

    code = "unknown"

    def __init__(self, message: str, path: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.operation = operation


class AccessDenied(StoreError):
    code = "permission-denied"

    def __init__(self, path: str, operation: str):
        super().__init__(
            "permission-denied: {} on {}".format(operation, path),
            path=path,
            operation=operation,
        )


class DocumentNotFound(StoreError):
    code = "not-found"

    def __init__(self, path: str, operation: str):
        super().__init__(
            "not-found: {} on {}".format(operation, path),
            path=path,
            operation=operation,
        )


@dataclass(frozen=True)
class SecurityRuleContext:
    """
    What was being accessed when a request got denied.
    operation is one of get/list/create/update/delete/write, but any string is accepted.
    """
    path: str
    operation: str
    request_resource_data: Optional[Dict[str, Any]] = None
    auth: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        return {k: v for k, v in out.items() if v is not None}


class StorePermissionError(Exception):
    """
    Payload of the permission-error channel.
    Raised by the error listener so the enclosing boundary can show a diagnostic.
    """

    def __init__(self, context: SecurityRuleContext, cause: Optional[BaseException] = None):
        self.context = context
        self.cause = cause
        super().__init__(self._build_message(context))
        if cause is not None:
            self.__cause__ = cause

    @staticmethod
    def _build_message(context: SecurityRuleContext) -> str:
        body = json.dumps(context.to_dict(), indent=2, sort_keys=True, default=str)
        return "{}\n{}".format(PERMISSION_DENIED_PREFIX, body)

    @property
    def path(self) -> str:
        return self.context.path

    @property
    def operation(self) -> str:
        return self.context.operation


class ListenerPayloadError(Exception):
    """Raised by a listener that received something other than an exception."""

    def __init__(self, channel: str, payload: Any):
        super().__init__("Unhandled event on channel {!r}: {!r}".format(channel, payload))
        self.channel = channel
        self.payload = payload
