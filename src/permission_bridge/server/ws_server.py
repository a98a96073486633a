# src/permission_bridge/server/ws_server.py
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Set

import websockets

from ..core.app import App
from ..core.event_bus import Subscription
from ..protocol import events_v1

logger = logging.getLogger(__name__)

FORWARDED_CHANNELS = (events_v1.BOUNDARY_FALLBACK, events_v1.LIFECYCLE)


class WSServer:
    """
    Minimal WebSocket server:

    - Subscribes to the boundary-fallback and lifecycle channels and forwards
      every event to all clients as JSON
    - Accepts the text command "reset" to remount the app's error boundary
    """

    def __init__(self, app: App, host: str = "127.0.0.1", port: int = 8765):
        self.app = app
        self.host = host
        self.port = port

        self._server: Optional[Any] = None
        self._clients: Set[Any] = set()
        self._send_tasks: Set[asyncio.Task] = set()
        self._subscriptions: List[Subscription] = [
            app.event_bus.subscribe(channel, self._on_event) for channel in FORWARDED_CHANNELS
        ]

    @property
    def clients(self) -> Set[Any]:
        return set(self._clients)

    async def _handler(self, websocket, path=None):
        self._clients.add(websocket)
        logger.info("[WSServer] client connected (%d total)", len(self._clients))
        try:
            # Replay the current fallback so late joiners see the error page
            fallback = self.app.boundary.fallback
            if fallback is not None:
                await websocket.send(json.dumps(events_v1.boundary_fallback(fallback.boundary, fallback.error)))

            async for message in websocket:
                if isinstance(message, str):
                    self._handle_command(message)
        except websockets.ConnectionClosed:
            pass
        finally:
            self._clients.discard(websocket)
            logger.info("[WSServer] client disconnected")

    def _handle_command(self, message: str) -> None:
        command = message.strip().lower()
        if command == "reset":
            self.app.boundary.reset()
        else:
            logger.warning("[WSServer] ignoring unknown command %r", message[:100])

    def _on_event(self, event: Dict[str, Any]) -> None:
        """
        Called whenever a forwarded channel publishes.
        We send it as JSON to all connected WS clients.
        """
        if not self._clients:
            return

        msg = json.dumps(event, default=str)

        async def _send(ws):
            try:
                await ws.send(msg)
            except websockets.ConnectionClosed:
                self._clients.discard(ws)

        # Schedule sends for all clients
        for ws in list(self._clients):
            task = asyncio.create_task(_send(ws))
            self._send_tasks.add(task)
            task.add_done_callback(self._send_tasks.discard)

    async def start(self):
        self._server = await websockets.serve(self._handler, self.host, self.port)
        logger.info("[WSServer] listening on ws://%s:%s", self.host, self.port)

    async def stop(self):
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions = []
        if self._send_tasks:
            results = await asyncio.gather(*self._send_tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.warning("[WSServer] send failed during shutdown: %s", result)
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def wait_forever(self):
        # Keep the server running forever
        await asyncio.Future()
