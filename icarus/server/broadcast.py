"""
Broadcast sink: pushes named messages to every connected WebSocket client.

broadcast(name, payload) is synchronous and fire-and-forget. The frame is
serialized once and queued per connection; one writer task per connection
sends its queue in order, so callers on the ingest path never wait on slow
clients. No delivery acknowledgement.

Each connection queue holds at most maxQueued frames. When a stalled client
lets it fill up, the oldest queued frame is dropped for the new one.

Frame: {"name": <channel>, "message": <payload>}
"""

import asyncio
from typing import Any, Dict

import orjson

from sdk.logging import getLogger


DEFAULT_MAX_QUEUED = 256


def encodeFrame(frame: Dict[str, Any]) -> str:
    return orjson.dumps(frame, option=orjson.OPT_NON_STR_KEYS).decode('utf-8')


class Broadcaster:
    """Registry of live connections plus the broadcast sink"""

    def __init__(self, maxQueued: int = DEFAULT_MAX_QUEUED):
        self.log = getLogger()
        self.maxQueued = maxQueued
        self.connections: Dict[str, Any] = {}   # connId -> ClientConnection
        self._queues: Dict[str, asyncio.Queue] = {}
        self._writers: Dict[str, asyncio.Task] = {}
        self.sentCount = 0
        self.droppedCount = 0

    def register(self, conn):
        queue = asyncio.Queue(maxsize=self.maxQueued)
        self.connections[conn.connId] = conn
        self._queues[conn.connId] = queue
        self._writers[conn.connId] = asyncio.create_task(self._writer(conn, queue),
                                                         name=f"broadcast:{conn.connId}")

    def unregister(self, connId: str):
        writer = self._writers.pop(connId, None)
        if writer:
            writer.cancel()
        queue = self._queues.pop(connId, None)
        while queue is not None and not queue.empty():
            queue.get_nowait()
            queue.task_done()
        return self.connections.pop(connId, None)

    def broadcast(self, name: str, payload: Any) -> None:
        if not self.connections:
            return

        data = encodeFrame({'name': name, 'message': payload})
        for connId, queue in self._queues.items():
            if queue.full():
                queue.get_nowait()
                queue.task_done()
                self.droppedCount += 1
                self.log.debug(f"[Broadcast] Queue full for {connId}, dropped oldest frame")
            queue.put_nowait(data)

    def queuedCount(self, connId: str) -> int:
        queue = self._queues.get(connId)
        return queue.qsize() if queue else 0

    async def _writer(self, conn, queue: asyncio.Queue):
        while True:
            data = await queue.get()
            try:
                await conn.sendRaw(data)
                self.sentCount += 1
            except (ConnectionError, RuntimeError) as e:
                # Client went away mid-send; its handler cleans up
                self.log.debug(f"[Broadcast] Send to {conn.connId} failed: {e}")
            finally:
                queue.task_done()

    async def drain(self):
        """Wait until every queued frame has been handed to its connection"""
        for queue in list(self._queues.values()):
            await queue.join()

    async def close(self):
        """Stop every writer task (queued frames are discarded)"""
        writers = list(self._writers.values())
        for connId in list(self.connections):
            self.unregister(connId)
        await asyncio.gather(*writers, return_exceptions=True)
