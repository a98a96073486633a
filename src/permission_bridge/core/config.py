# src/permission_bridge/core/config.py
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from ..protocol import events_v1


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    return value if value not in (None, "") else default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError("{} must be an integer, got {!r}".format(name, raw)) from None


@dataclass
class BridgeConfig:
    # defaults are read from the environment each time a config is built
    channel: str = field(default_factory=lambda: _env("BRIDGE_CHANNEL", events_v1.PERMISSION_ERROR))
    ws_enabled: bool = field(default_factory=lambda: _env_bool("BRIDGE_WS_ENABLED", True))
    ws_host: str = field(default_factory=lambda: _env("BRIDGE_WS_HOST", "127.0.0.1"))
    ws_port: int = field(default_factory=lambda: _env_int("BRIDGE_WS_PORT", 8765))
    store_url: Optional[str] = field(default_factory=lambda: _env("BRIDGE_STORE_URL"))
    store_token: Optional[str] = field(default_factory=lambda: _env("BRIDGE_STORE_TOKEN"))
    log_level: str = field(default_factory=lambda: _env("BRIDGE_LOG_LEVEL", "INFO").upper())

    def to_public_dict(self) -> Dict[str, Any]:
        """Config as sent in lifecycle events; the store token is never included."""
        out = asdict(self)
        out.pop("store_token", None)
        return out
