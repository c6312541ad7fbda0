"""
JournalSource: abstract bases for the game's record sources.

Two sources feed the service:
  SnapshotSource - companion JSON files rewritten in place by the game (Status.json, Cargo.json, ...)
  LogSource      - append-only Journal.*.log files, one JSON record per line

Callbacks are registered once via subscribe() before load() and are invoked
for both the bulk load and the tail started by watch():
  onFile(fileInfo: dict)   {'name', 'size', 'lineCount'} - may repeat for the same name
  onRecord(entry: dict)    one journal entry, fired once per distinct entry

Property of Uncompromising Sensors LLC.
"""


# Imports
from abc import ABC, abstractmethod
from typing import Callable, Optional, Dict, Any, List


FileCallback = Callable[[Dict[str, Any]], None]
RecordCallback = Callable[[Dict[str, Any]], None]


class JournalError(Exception):
    """Journal source I/O failure"""
    pass


class SnapshotSource(ABC):
    """Bulk snapshot of companion JSON files"""

    def __init__(self):
        self._onFile: Optional[FileCallback] = None

    def subscribe(self, onFile: Optional[FileCallback] = None) -> None:
        self._onFile = onFile

    def _emitFile(self, fileInfo: Dict[str, Any]) -> None:
        if self._onFile:
            self._onFile(fileInfo)

    @abstractmethod
    async def load(self) -> None:
        pass

    @abstractmethod
    def watch(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass


class LogSource(ABC):
    """Append-only journal log"""

    def __init__(self):
        self._onFile: Optional[FileCallback] = None
        self._onRecord: Optional[RecordCallback] = None

    def subscribe(self, onFile: Optional[FileCallback] = None,
                  onRecord: Optional[RecordCallback] = None) -> None:
        self._onFile = onFile
        self._onRecord = onRecord

    def _emitFile(self, fileInfo: Dict[str, Any]) -> None:
        if self._onFile:
            self._onFile(fileInfo)

    def _emitRecord(self, entry: Dict[str, Any]) -> None:
        if self._onRecord:
            self._onRecord(entry)

    @abstractmethod
    async def load(self, windowDays: int = 30) -> None:
        pass

    @abstractmethod
    def watch(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass

    @abstractmethod
    def getEvent(self, name: str) -> Optional[Dict[str, Any]]:
        """Most recent entry with this event name"""
        pass

    @abstractmethod
    def getFromTimestamp(self, timestamp: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def getNewest(self, count: int) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def stats(self) -> Dict[str, Any]:
        """{'eventsImportedCount': int, 'lastActivityTime': str | None}"""
        pass
