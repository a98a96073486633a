# src/permission_bridge/protocol/events_v1.py
from typing import Any, Dict, Optional

from .errors import SecurityRuleContext, StorePermissionError

# Channel names and their payloads
PERMISSION_ERROR = "permission-error"    # StorePermissionError
BOUNDARY_FALLBACK = "boundary-fallback"  # dict, see boundary_fallback()
LIFECYCLE = "lifecycle"                  # dict: app_started / app_stopped / boundary_reset


def permission_error(
    path: str,
    operation: str,
    request_resource_data: Optional[Dict[str, Any]] = None,
    auth: Optional[Dict[str, Any]] = None,
    cause: Optional[BaseException] = None,
) -> StorePermissionError:
    return StorePermissionError(
        SecurityRuleContext(
            path=path,
            operation=operation,
            request_resource_data=request_resource_data,
            auth=auth,
        ),
        cause=cause,
    )


def app_started(app_id: str, config: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "app_started",
        "app_id": app_id,
        "config": config,
    }


def app_stopped(app_id: str) -> Dict[str, Any]:
    return {
        "type": "app_stopped",
        "app_id": app_id,
    }


def boundary_fallback(boundary: str, error: BaseException) -> Dict[str, Any]:
    event = {
        "type": "boundary_fallback",
        "boundary": boundary,
        "error_type": type(error).__name__,
        "message": str(error),
    }
    context = getattr(error, "context", None)
    if isinstance(context, SecurityRuleContext):
        event["context"] = context.to_dict()
    return event


def boundary_reset(boundary: str) -> Dict[str, Any]:
    return {
        "type": "boundary_reset",
        "boundary": boundary,
    }
