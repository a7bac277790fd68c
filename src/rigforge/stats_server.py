"""HTTP + WebSocket server exposing asset stats and rigging state."""

from __future__ import annotations

import asyncio
import http.server
import json
import logging
import re
import threading
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlsplit

from websockets.asyncio.server import ServerConnection, broadcast, serve

from rigforge.errors import AssetNotFoundError, MetadataValidationError
from rigforge.sweeper import sweep_forever

if TYPE_CHECKING:
    from rigforge.lifecycle import RiggingLifecycleManager, TransitionEvent

logger = logging.getLogger(__name__)

_RIGGING_PATH = re.compile(r"/api/assets/([^/]+)/rigging")


class _APIHandler(http.server.BaseHTTPRequestHandler):
    """Serves ``/api/stats`` and ``/api/assets/{id}/rigging`` as JSON."""

    manager: RiggingLifecycleManager

    def do_GET(self) -> None:
        path = urlsplit(self.path).path
        if path == "/api/stats":
            try:
                counts = self.manager.stats()
            except MetadataValidationError as exc:
                logger.error("Cannot compute stats: %s", exc)
                self._send_json(500, {"error": str(exc)})
            else:
                self._send_json(200, counts.model_dump())
            return
        match = _RIGGING_PATH.fullmatch(path)
        if match is None:
            self.send_error(404)
            return
        try:
            snapshot = self.manager.query(unquote(match.group(1)))
        except AssetNotFoundError as exc:
            self._send_json(404, {"error": str(exc)})
        except MetadataValidationError as exc:
            logger.error("Unreadable metadata: %s", exc)
            self._send_json(500, {"error": str(exc)})
        else:
            self._send_json(200, snapshot.to_dict())

    def _send_json(self, status: int, payload: dict[str, Any]) -> None:
        body = json.dumps(payload).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


class StatsServer:
    """Serves stats over HTTP and pushes fresh stats to WebSocket clients.

    Every committed rigging transition triggers one ``stats`` message.
    """

    def __init__(
        self,
        manager: RiggingLifecycleManager,
        host: str = "localhost",
        http_port: int = 8765,
        ws_port: int = 8766,
        sweep_interval: float | None = None,
    ) -> None:
        self.manager = manager
        self.host = host
        self.http_port = http_port
        self.ws_port = ws_port
        self.sweep_interval = sweep_interval
        self._clients: set[ServerConnection] = set()
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._http_server: http.server.HTTPServer | None = None

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send a JSON message to all connected WebSocket clients."""
        broadcast(self._clients, json.dumps(message))

    def _stats_message(self) -> dict[str, Any]:
        return {"type": "stats", **self.manager.stats().model_dump()}

    def _on_transition(self, event: TransitionEvent) -> None:
        """Manager listener; runs on whichever thread committed the transition."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        message = self._stats_message()
        message["event"] = {
            "assetId": event.asset_id,
            "operation": event.operation,
            "previous": event.previous.value,
            "current": event.current.value,
        }
        loop.call_soon_threadsafe(self._queue.put_nowait, message)

    async def _broadcast_loop(self) -> None:
        """Drain the queue and broadcast messages to clients."""
        while True:
            msg = await self._queue.get()
            await self.broadcast(msg)

    async def _ws_handler(self, websocket: ServerConnection) -> None:
        """Register a client and greet it with the current stats."""
        self._clients.add(websocket)
        try:
            stats = await asyncio.to_thread(self._stats_message)
            await websocket.send(json.dumps(stats))
            async for _message in websocket:
                pass  # push-only channel
        finally:
            self._clients.discard(websocket)

    def _start_http_server(self) -> None:
        """Start the HTTP server in a daemon thread."""
        handler_class = type(
            "_BoundAPIHandler",
            (_APIHandler,),
            {"manager": self.manager},
        )
        self._http_server = http.server.ThreadingHTTPServer(
            (self.host, self.http_port), handler_class
        )
        self.http_port = self._http_server.server_address[1]
        thread = threading.Thread(target=self._http_server.serve_forever, daemon=True)
        thread.start()

    def attach(self) -> None:
        """Start forwarding transitions to the running event loop."""
        self._loop = asyncio.get_running_loop()
        self.manager.add_listener(self._on_transition)

    def detach(self) -> None:
        self.manager.remove_listener(self._on_transition)
        self._loop = None

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Serve until ``stop_event`` is set (or forever when not given)."""
        stop_event = stop_event or asyncio.Event()
        self.attach()
        self._start_http_server()

        tasks: list[asyncio.Task[Any]] = []
        try:
            async with serve(self._ws_handler, self.host, self.ws_port):
                logger.info(
                    "Serving stats on http://%s:%d/api/stats and ws://%s:%d",
                    self.host, self.http_port, self.host, self.ws_port,
                )
                tasks.append(asyncio.create_task(self._broadcast_loop()))
                if self.sweep_interval:
                    tasks.append(asyncio.create_task(
                        sweep_forever(self.manager, self.sweep_interval, stop_event)
                    ))
                await stop_event.wait()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            self.detach()
            if self._http_server:
                self._http_server.shutdown()
                self._http_server.server_close()
