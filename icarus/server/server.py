"""
ICARUS Server - WebSocket edge for the request surface and broadcasts.

Protocol (JSON text frames, orjson):
    client -> server   {"requestId": "...", "name": "getSystem", "message": {"name": "Sol"}}
    server -> client   {"requestId": "...", "name": "getSystem", "message": {...}}
                       {"requestId": "...", "name": "getSystem", "error": "..."}
    server -> clients  {"name": "newLogEntry", "message": {...}}   (broadcast, no requestId)

Architecture invariants:
- Server holds only ephemeral per-connection state
- The engine is authoritative; the server never touches record sources
- A failing request is answered with an error frame, never by dropping the connection

Property of Uncompromising Sensors LLC.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

import orjson
from aiohttp import web, WSMsgType

from icarus.server.broadcast import Broadcaster, encodeFrame
from sdk.logging import getLogger


RequestHandler = Callable[[str, Optional[Dict[str, Any]]], Awaitable[Any]]


class ClientConnection:
    """Ephemeral client connection state (exists only while the WebSocket is open)"""

    def __init__(self, connId: str, ws: web.WebSocketResponse, remote: Optional[str] = None):
        self.connId = connId
        self.ws = ws
        self.remote = remote
        self.log = getLogger()

    async def sendRaw(self, data: str):
        if not self.ws.closed:
            await self.ws.send_str(data)

    async def sendMessage(self, message: Dict[str, Any]):
        await self.sendRaw(encodeFrame(message))

    async def sendError(self, error: str, requestId: Optional[str] = None, name: Optional[str] = None):
        await self.sendMessage({
            'requestId': requestId,
            'name': name,
            'error': error
        })


class IcarusServer:
    """aiohttp app serving /ws and /health"""

    def __init__(self, config: Dict[str, Any], requestHandler: RequestHandler,
                 broadcaster: Broadcaster):
        self.config = config
        self.requestHandler = requestHandler
        self.broadcaster = broadcaster
        self.log = getLogger()

        self.app = web.Application()
        self._setupRoutes()

        self._runner = None
        self._site = None
        self._requestTasks: set = set()

    def _setupRoutes(self):
        self.app.router.add_get('/ws', self.handleWebSocket)
        self.app.router.add_get('/health', self.handleHealth)

    async def start(self):
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        host = self.config.get('host', '0.0.0.0')
        port = self.config.get('port', 3300)

        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()

        self.log.info(f"[Server] Listening on {host}:{port}")

    async def stop(self):
        self.log.info("[Server] Stopping...")

        for conn in list(self.broadcaster.connections.values()):
            await conn.ws.close()
        await self.broadcaster.drain()
        await self.broadcaster.close()

        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()

        self.log.info("[Server] Stopped")

    # =========================================================================
    # HTTP Handlers
    # =========================================================================

    async def handleHealth(self, request: web.Request) -> web.Response:
        return web.json_response({'status': 'ok', 'clients': len(self.broadcaster.connections)})

    # =========================================================================
    # WebSocket Handler
    # =========================================================================

    async def handleWebSocket(self, request: web.Request) -> web.WebSocketResponse:
        connId = str(uuid.uuid4())
        self.log.info(f"[Server] WebSocket connection: {connId} from {request.remote}")

        ws = web.WebSocketResponse()
        await ws.prepare(request)

        conn = ClientConnection(connId, ws, request.remote)
        self.broadcaster.register(conn)

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    # Requests run concurrently so a slow catalog lookup does not block the socket
                    task = asyncio.create_task(self._handleMessage(conn, msg.data))
                    self._requestTasks.add(task)
                    task.add_done_callback(self._requestTasks.discard)
                elif msg.type == WSMsgType.ERROR:
                    self.log.error(f"[Server] WebSocket error: {ws.exception()}")
        finally:
            self.broadcaster.unregister(connId)
            self.log.info(f"[Server] Disconnected: {connId}")

        return ws

    async def _handleMessage(self, conn: ClientConnection, data: str):
        requestId = None
        name = None
        try:
            request = orjson.loads(data)
            if not isinstance(request, dict):
                raise ValueError("Request must be a JSON object")
            requestId = request.get('requestId')
            name = request.get('name')

            result = await self.requestHandler(name, request.get('message'))

            await conn.sendMessage({'requestId': requestId, 'name': name, 'message': result})

        except Exception as e:
            self.log.error(f"[Server] Request {name} failed: {e!r}", requestId=requestId)
            await conn.sendError(str(e), requestId=requestId, name=name)
