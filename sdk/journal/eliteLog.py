"""
EliteLog: line-oriented reader for Journal.*.log files with polling tail.

API:
    eliteLog = EliteLog(journalDir)
    eliteLog.subscribe(onFile=..., onRecord=...)
    await eliteLog.load(windowDays=30)   # bulk load files modified inside the window
    eliteLog.watch()                     # tail: new lines and new files
    eliteLog.getEvent('FSDJump')         # most recent entry of that type
    await eliteLog.stop()

Design:
    - One JSON object per line, lines terminated by CRLF
    - Entries are deduplicated by canonical-JSON identity (see canonical.py)
    - Only complete lines are consumed; a partially written line is read again on the next poll
    - Malformed lines are logged and skipped
    - Files outside the history window are skipped on load and only tailed for new lines

Property of Uncompromising Sensors LLC.
"""


# Imports
import asyncio, bisect, time
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple

import orjson

# Local imports
from .base import LogSource, JournalError
from .canonical import entryKey
from sdk.logging import getLogger


def _timestampOf(entry: Dict[str, Any]) -> str:
    return entry.get('timestamp') or ''


class EliteLog(LogSource):
    """Journal log source (bulk load + tail)"""

    FILE_PATTERN = 'Journal.*.log'

    def __init__(self, journalDir, pollIntervalSeconds: float = 1.0):
        super().__init__()
        self.journalDir = Path(journalDir)
        self.pollIntervalSeconds = pollIntervalSeconds
        self.log = getLogger()

        self._entries: List[Dict[str, Any]] = []           # Oldest -> newest by timestamp
        self._keys: set = set()
        self._latestByEvent: Dict[str, Dict[str, Any]] = {}
        self._offsets: Dict[str, int] = {}                 # filename -> bytes consumed
        self._watchTask: Optional[asyncio.Task] = None

    # ===== Loading =====
    async def load(self, windowDays: int = 30) -> None:
        cutoff = time.time() - windowDays * 86400
        loaded = 0

        for path, size, mtime in self._listFiles():
            if mtime < cutoff:
                # Outside the history window: tail only
                self._offsets[path.name] = size
                continue
            await self._loadFile(path)
            loaded += 1

        self.log.info(f"[EliteLog] Loaded {loaded} journal files", entries=len(self._entries), windowDays=windowDays)

    async def _loadFile(self, path: Path, offset: int = 0) -> None:
        try:
            data = await asyncio.to_thread(self._readFrom, path, offset)
        except OSError as e:
            raise JournalError(f"Failed to read {path.name}: {e}") from e

        consumed, lines = self._splitLines(data, final=(offset == 0))
        self._offsets[path.name] = offset + consumed

        if offset == 0:
            self._emitFile({'name': path.name, 'size': len(data), 'lineCount': len(lines)})

        for line in lines:
            self._ingestLine(path.name, line)

    @staticmethod
    def _readFrom(path: Path, offset: int) -> bytes:
        with open(path, 'rb') as f:
            f.seek(offset)
            return f.read()

    def _splitLines(self, data: bytes, final: bool = False) -> Tuple[int, List[bytes]]:
        """Split into complete lines. Returns (bytes consumed, lines)."""
        end = data.rfind(b'\n')
        consumed = end + 1
        lines = data[:consumed].splitlines()

        # Last line of a finished file may lack a terminator
        remainder = data[consumed:]
        if final and remainder.strip():
            try:
                orjson.loads(remainder)
                lines.append(remainder)
                consumed = len(data)
            except orjson.JSONDecodeError:
                pass

        return consumed, lines

    def _ingestLine(self, fileName: str, line: bytes) -> None:
        line = line.strip()
        if not line:
            return

        try:
            entry = orjson.loads(line)
        except orjson.JSONDecodeError as e:
            self.log.warning(f"[EliteLog] Skipping malformed line in {fileName}: {e}")
            return

        if not isinstance(entry, dict) or not entry.get('event'):
            return

        key = entryKey(entry)
        if key in self._keys:
            return
        self._keys.add(key)

        bisect.insort(self._entries, entry, key=_timestampOf)

        eventName = entry['event']
        latest = self._latestByEvent.get(eventName)
        if latest is None or _timestampOf(entry) >= _timestampOf(latest):
            self._latestByEvent[eventName] = entry

        self._emitRecord(entry)

    def _listFiles(self) -> List[Tuple[Path, int, float]]:
        """Journal files sorted oldest first as (path, size, mtime)"""
        files = []
        for path in self.journalDir.glob(self.FILE_PATTERN):
            try:
                st = path.stat()
            except OSError:
                continue  # Removed between glob and stat
            files.append((path, st.st_size, st.st_mtime))
        files.sort(key=lambda f: (f[2], f[0].name))
        return files

    # ===== Tailing =====
    def watch(self) -> None:
        if self._watchTask and not self._watchTask.done():
            return
        self._watchTask = asyncio.create_task(self._pollLoop())
        self.log.info(f"[EliteLog] Watching {self.journalDir}", interval=self.pollIntervalSeconds)

    async def _pollLoop(self):
        while True:
            await asyncio.sleep(self.pollIntervalSeconds)
            try:
                await self.poll()
            except JournalError as e:
                self.log.warning(f"[EliteLog] Poll failed: {e}")

    async def poll(self) -> None:
        """Read anything appended since the last load/poll"""
        for path, size, _ in self._listFiles():
            offset = self._offsets.get(path.name)
            if offset is None:
                await self._loadFile(path)
            elif size > offset:
                await self._loadFile(path, offset)
            elif size < offset:
                # Rewritten in place - re-read, dedupe drops what we already have
                self.log.info(f"[EliteLog] {path.name} shrank, re-reading")
                await self._loadFile(path)

    async def stop(self) -> None:
        if self._watchTask:
            self._watchTask.cancel()
            try:
                await self._watchTask
            except asyncio.CancelledError:
                pass
            self._watchTask = None

    # ===== Queries =====
    def getEvent(self, name: str) -> Optional[Dict[str, Any]]:
        return self._latestByEvent.get(name)

    def getFromTimestamp(self, timestamp: str) -> List[Dict[str, Any]]:
        """Entries at or after timestamp, newest first"""
        start = bisect.bisect_left(self._entries, timestamp, key=_timestampOf)
        return list(reversed(self._entries[start:]))

    def getNewest(self, count: int) -> List[Dict[str, Any]]:
        if count <= 0:
            return []
        return list(reversed(self._entries[-count:]))

    def stats(self) -> Dict[str, Any]:
        return {
            'eventsImportedCount': len(self._keys),
            'lastActivityTime': _timestampOf(self._entries[-1]) if self._entries else None
        }
