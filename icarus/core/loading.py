"""
Loading-phase controller.

notStarted -> inProgress -> complete

start() runs the bulk load once:
  snapshot load -> snapshot watch -> log load (history window) -> log watch
While inProgress, a 'loadingProgress' broadcast goes out immediately and then
every progressInterval seconds; raw/derived broadcasts are suppressed by the
ingestion bridge. Completion stops the timer and sends one final progress
broadcast.

Failure: a source load error propagates to the caller of start(). The phase
stays inProgress (nothing is retried) and the progress timer is stopped.

Property of Uncompromising Sensors LLC.
"""

import asyncio
from typing import Any, Callable, Optional

from .stats import StatsAccumulator, LoadingPhase, LoadingStats
from sdk.logging import getLogger


LOADING_PROGRESS = 'loadingProgress'


class LoadingController:
    """Owns the loading phase and the progress broadcast timer"""

    def __init__(self, stats: StatsAccumulator, snapshotSource, logSource,
                 broadcast: Callable[[str, Any], None], progressInterval: float = 0.2):
        self.stats = stats
        self.snapshotSource = snapshotSource
        self.logSource = logSource
        self.broadcast = broadcast
        self.progressInterval = progressInterval
        self.log = getLogger()

        self._progressTask: Optional[asyncio.Task] = None

    @property
    def phase(self) -> LoadingPhase:
        return self.stats.phase

    @property
    def inProgress(self) -> bool:
        return self.stats.phase == LoadingPhase.IN_PROGRESS

    async def start(self, historyWindowDays: int = 30) -> LoadingStats:
        """Run the bulk load once; later calls return the current stats"""
        if self.stats.phase != LoadingPhase.NOT_STARTED:
            return self.stats.snapshot()

        self.stats.markStarted()
        self.log.info("[Loading] Started", historyWindowDays=historyWindowDays)

        self._emitProgress()
        self._progressTask = asyncio.create_task(self._progressLoop())

        try:
            await self.snapshotSource.load()
            self.snapshotSource.watch()

            await self.logSource.load(windowDays=historyWindowDays)
            self.logSource.watch()
        except Exception as e:
            self.log.error(f"[Loading] Bulk load failed: {e!r}")
            await self._stopProgress()
            raise

        self.stats.markComplete()
        await self._stopProgress()
        self._emitProgress()

        snapshot = self.stats.snapshot()
        self.log.info("[Loading] Complete", files=snapshot.filesLoadedCount,
                      events=snapshot.eventsImportedCount,
                      seconds=round(snapshot.elapsedLoadingDuration.total_seconds(), 3))
        return snapshot

    def _emitProgress(self):
        self.broadcast(LOADING_PROGRESS, self.stats.snapshot().toDict())

    async def _progressLoop(self):
        while True:
            await asyncio.sleep(self.progressInterval)
            self._emitProgress()

    async def _stopProgress(self):
        if self._progressTask:
            self._progressTask.cancel()
            try:
                await self._progressTask
            except asyncio.CancelledError:
                pass
            self._progressTask = None
