"""
Loading statistics: running counters and the snapshot handed to callers.

Architecture invariants:
- A file name is counted at most once (re-scans do not double count bytes/lines)
- eventsImportedCount is copied from the log source, never recomputed here
- elapsedLoadingDuration runs start -> end once complete, start -> now while loading
- Snapshots are copies; callers can never mutate the accumulator through them

Property of Uncompromising Sensors LLC.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Any, Optional, List


class LoadingPhase(str, Enum):
    """Bulk-load phase"""
    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class LoadedFileRecord:
    """One file seen by a record source (identity is name)"""
    name: str
    sizeBytes: int
    lineCount: Optional[int] = None


@dataclass
class LoadingStats:
    """Read-only view of loading progress"""
    phase: LoadingPhase = LoadingPhase.NOT_STARTED
    filesLoadedCount: int = 0
    eventsImportedCount: int = 0
    logLinesCount: int = 0
    logSizeBytes: int = 0
    eventTypeCounts: Dict[str, int] = field(default_factory=dict)
    lastActivityTime: Optional[str] = None
    elapsedLoadingDuration: timedelta = timedelta(0)

    def toDict(self) -> Dict[str, Any]:
        """Wire form (field names the UI consumes)"""
        return {
            'phase': self.phase.value,
            'loadingComplete': self.phase == LoadingPhase.COMPLETE,
            'loadingInProgress': self.phase == LoadingPhase.IN_PROGRESS,
            'numberOfFiles': self.filesLoadedCount,
            'numberOfEventsImported': self.eventsImportedCount,
            'numberOfLogLines': self.logLinesCount,
            'eventTypesLoaded': dict(self.eventTypeCounts),
            'logSizeInBytes': self.logSizeBytes,
            'lastActivity': self.lastActivityTime,
            'loadingTime': int(self.elapsedLoadingDuration.total_seconds() * 1000)
        }


class StatsAccumulator:
    """
    Running ingestion counters.

    Mutated by the ingestion bridge (files, records) and the loading
    controller (phase, start/end time). snapshot() is safe to call at any time.
    """

    def __init__(self, logSource=None, clock=None):
        """
        Args:
            logSource: LogSource providing lastActivityTime (optional)
            clock: Callable returning an aware datetime (default: UTC now)
        """
        self.logSource = logSource
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.phase = LoadingPhase.NOT_STARTED
        self.startTime: Optional[datetime] = None
        self.endTime: Optional[datetime] = None

        self.files: List[LoadedFileRecord] = []
        self._fileNames: set = set()
        self.logLinesCount = 0
        self.logSizeBytes = 0
        self.eventsImportedCount = 0
        self.eventTypeCounts: Dict[str, int] = {}

    # ===== Files / records =====
    def recordFile(self, name: str, sizeBytes: int, lineCount: Optional[int] = None) -> bool:
        """Count a file once. Returns False if the name was already recorded."""
        if name in self._fileNames:
            return False

        self._fileNames.add(name)
        self.files.append(LoadedFileRecord(name, sizeBytes, lineCount))
        self.logSizeBytes += sizeBytes
        if lineCount:
            self.logLinesCount += lineCount
        return True

    def countEventType(self, eventName: str):
        self.eventTypeCounts[eventName] = self.eventTypeCounts.get(eventName, 0) + 1

    def setEventsImported(self, count: int):
        self.eventsImportedCount = count

    # ===== Phase =====
    def markStarted(self):
        self.phase = LoadingPhase.IN_PROGRESS
        self.startTime = self.clock()

    def markComplete(self):
        self.phase = LoadingPhase.COMPLETE
        self.endTime = self.clock()

    @property
    def elapsed(self) -> timedelta:
        if self.startTime is None:
            return timedelta(0)
        return (self.endTime or self.clock()) - self.startTime

    def snapshot(self) -> LoadingStats:
        lastActivity = None
        if self.logSource is not None:
            lastActivity = self.logSource.stats().get('lastActivityTime')

        return LoadingStats(
            phase=self.phase,
            filesLoadedCount=len(self.files),
            eventsImportedCount=self.eventsImportedCount,
            logLinesCount=self.logLinesCount,
            logSizeBytes=self.logSizeBytes,
            eventTypeCounts=dict(self.eventTypeCounts),
            lastActivityTime=lastActivity,
            elapsedLoadingDuration=self.elapsed
        )
