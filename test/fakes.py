"""
In-memory stand-ins for the record sources, catalog and broadcast sink.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

from sdk.catalog import CatalogError
from sdk.journal import SnapshotSource, LogSource, JournalError


class BroadcastRecorder:
    """Broadcast sink that records (name, payload) pairs"""

    def __init__(self):
        self.messages: List[tuple] = []

    def __call__(self, name: str, payload: Any):
        self.messages.append((name, payload))

    def named(self, name: str) -> List[Any]:
        return [payload for n, payload in self.messages if n == name]

    def clear(self):
        self.messages.clear()


class FakeSnapshotSource(SnapshotSource):
    def __init__(self, files: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        super().__init__()
        self.files = files or []
        self.error = error
        self.loadCount = 0
        self.watchCount = 0
        self.stopped = False

    async def load(self):
        self.loadCount += 1
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        for fileInfo in self.files:
            self._emitFile(fileInfo)

    def watch(self):
        self.watchCount += 1

    async def stop(self):
        self.stopped = True


class FakeLogSource(LogSource):
    """Log source fed from a list; push() simulates the tail"""

    def __init__(self, entries: Optional[List[Dict[str, Any]]] = None,
                 files: Optional[List[Dict[str, Any]]] = None,
                 error: Optional[Exception] = None, loadDelay: float = 0.0):
        super().__init__()
        self.initialEntries = entries or []
        self.files = files or []
        self.error = error
        self.loadDelay = loadDelay
        self.entries: List[Dict[str, Any]] = []
        self.loadCount = 0
        self.watchCount = 0
        self.windowDays = None
        self.stopped = False

    async def load(self, windowDays: int = 30):
        self.loadCount += 1
        self.windowDays = windowDays
        if self.loadDelay:
            await asyncio.sleep(self.loadDelay)
        if self.error:
            raise self.error
        for fileInfo in self.files:
            self._emitFile(fileInfo)
        for entry in self.initialEntries:
            self.push(entry)

    def push(self, entry: Dict[str, Any]):
        self.entries.append(entry)
        self._emitRecord(entry)

    def watch(self):
        self.watchCount += 1

    async def stop(self):
        self.stopped = True

    def getEvent(self, name: str):
        for entry in reversed(self.entries):
            if entry.get('event') == name:
                return entry
        return None

    def getFromTimestamp(self, timestamp: str):
        return [e for e in reversed(self.entries) if e.get('timestamp', '') >= timestamp]

    def getNewest(self, count: int):
        return list(reversed(self.entries[-count:])) if count > 0 else []

    def stats(self):
        return {
            'eventsImportedCount': len(self.entries),
            'lastActivityTime': self.entries[-1].get('timestamp') if self.entries else None
        }


class FakeCatalog:
    """Catalog with canned data, call counting and switchable failure"""

    def __init__(self, bodies: Optional[Dict[str, list]] = None, stations: Optional[Dict[str, list]] = None):
        self._bodies = bodies or {}
        self._stations = stations or {}
        self.bodyCalls: List[str] = []
        self.stationCalls: List[str] = []
        self.failing = False
        self.gate: Optional[asyncio.Event] = None

    async def bodies(self, systemName: str):
        self.bodyCalls.append(systemName)
        if self.gate:
            await self.gate.wait()
        if self.failing:
            raise CatalogError(f"catalog down ({systemName})")
        return list(self._bodies.get(systemName, []))

    async def stations(self, systemName: str):
        self.stationCalls.append(systemName)
        if self.gate:
            await self.gate.wait()
        if self.failing:
            raise CatalogError(f"catalog down ({systemName})")
        return list(self._stations.get(systemName, []))


def journalEntry(event: str, timestamp: str = '2024-05-01T12:00:00Z', **fields) -> Dict[str, Any]:
    return {'timestamp': timestamp, 'event': event, **fields}


__all__ = [
    'BroadcastRecorder',
    'FakeSnapshotSource',
    'FakeLogSource',
    'FakeCatalog',
    'journalEntry',
    'JournalError',
    'CatalogError'
]
