"""
EliteJson: snapshot reader for the companion JSON files the game rewrites in place.

Files: Status, Cargo, NavRoute, Market, ModulesInfo, Outfitting, Shipyard,
Backpack, ShipLocker, FCMaterials (each '<name>.json' in the journal directory).

A file caught mid-write does not parse; it is skipped and picked up on the
next poll since its mtime stays newer than the last good read.
"""


# Imports
import asyncio
from pathlib import Path
from typing import Optional, Dict, Any, List

import orjson

# Local imports
from .base import SnapshotSource, JournalError
from sdk.logging import getLogger


class EliteJson(SnapshotSource):
    """Companion JSON snapshot source"""

    FILES = ('Status', 'Cargo', 'NavRoute', 'Market', 'ModulesInfo', 'Outfitting',
             'Shipyard', 'Backpack', 'ShipLocker', 'FCMaterials')

    def __init__(self, journalDir, pollIntervalSeconds: float = 1.0):
        super().__init__()
        self.journalDir = Path(journalDir)
        self.pollIntervalSeconds = pollIntervalSeconds
        self.log = getLogger()

        self._files: Dict[str, Any] = {}      # 'Status' -> parsed content
        self._mtimes: Dict[str, float] = {}   # 'Status.json' -> mtime of last good read
        self._watchTask: Optional[asyncio.Task] = None

    async def load(self) -> None:
        for path in self._listFiles():
            await self._loadFile(path)
        self.log.info(f"[EliteJson] Loaded {len(self._files)} JSON files")

    async def _loadFile(self, path: Path) -> None:
        try:
            mtime = path.stat().st_mtime
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise JournalError(f"Failed to read {path.name}: {e}") from e

        if not data.strip():
            return  # Truncated for rewrite

        try:
            content = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            self.log.warning(f"[EliteJson] {path.name} not parseable yet: {e}")
            return

        self._files[path.stem] = content
        self._mtimes[path.name] = mtime
        self._emitFile({'name': path.name, 'size': len(data), 'lineCount': None})

    def _listFiles(self) -> List[Path]:
        return [p for p in (self.journalDir / f"{name}.json" for name in self.FILES) if p.is_file()]

    def watch(self) -> None:
        if self._watchTask and not self._watchTask.done():
            return
        self._watchTask = asyncio.create_task(self._pollLoop())

    async def _pollLoop(self):
        while True:
            await asyncio.sleep(self.pollIntervalSeconds)
            try:
                await self.poll()
            except JournalError as e:
                self.log.warning(f"[EliteJson] Poll failed: {e}")

    async def poll(self) -> None:
        """Reload files whose mtime moved since the last good read"""
        for path in self._listFiles():
            try:
                mtime = path.stat().st_mtime
            except OSError:
                continue
            if mtime != self._mtimes.get(path.name):
                await self._loadFile(path)

    async def stop(self) -> None:
        if self._watchTask:
            self._watchTask.cancel()
            try:
                await self._watchTask
            except asyncio.CancelledError:
                pass
            self._watchTask = None

    def getFile(self, name: str) -> Optional[Any]:
        """Parsed content by stem, e.g. getFile('Status')"""
        return self._files.get(name)
