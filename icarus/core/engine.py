"""
ICARUS engine - one explicitly constructed service context.

Owns (per instance, no module globals):
- StatsAccumulator         loading counters
- SystemInfoResolver       catalog cache
- DerivedEventRegistry     immutable trigger index
- DerivedEventDispatcher   derived event fan-out
- LoadingController        bulk-load phase
- IngestionBridge          callbacks subscribed on both record sources

Request surface (all async, plain data in/out):
    hostInfo, loadingStats, getCommander, getLogEntries, getSystem, start (alias: init)

Property of Uncompromising Sensors LLC.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from .stats import StatsAccumulator
from .derivedEvents import DerivedEventDefinition, DerivedEventRegistry, DerivedEventDispatcher
from .loading import LoadingController
from .ingestion import IngestionBridge
from .systemInfo import SystemInfoResolver
from .queries import hostInfo, commanderInfo
from sdk.logging import getLogger


DEFAULT_HISTORY_WINDOW_DAYS = 30
DEFAULT_LOG_ENTRY_COUNT = 100


class UnknownRequestError(Exception):
    """Request name not on the request surface"""
    pass


def defaultDefinitions(engine: 'IcarusEngine') -> List[DerivedEventDefinition]:
    """
    Built-in derived events.

    Their trigger events (LoadGame, FSDJump) are dispatched instead of counted,
    so they never appear in the per-type counts (eventTypesLoaded).
    """
    return [
        DerivedEventDefinition(
            name='IcarusGameLoadedEvent',
            triggers=frozenset({'LoadGame'}),
            resolve=engine.getCommander
        ),
        DerivedEventDefinition(
            name='IcarusSystemChangedEvent',
            triggers=frozenset({'FSDJump'}),
            resolve=engine.getSystem
        )
    ]


class IcarusEngine:
    """Ingestion engine and request surface for one journal directory"""

    def __init__(self, snapshotSource, logSource, catalog,
                 broadcast: Callable[[str, Any], None], port: int = 0,
                 progressInterval: float = 0.2,
                 definitions: Optional[Iterable[DerivedEventDefinition]] = None):
        """
        Args:
            snapshotSource: SnapshotSource (companion JSON files)
            logSource: LogSource (journal log)
            catalog: Catalog client (bodies/stations)
            broadcast: Broadcast sink (name, payload), fire-and-forget
            port: Port advertised by hostInfo()
            progressInterval: Seconds between loadingProgress broadcasts
            definitions: Derived event definitions (default: defaultDefinitions)
        """
        self.snapshotSource = snapshotSource
        self.logSource = logSource
        self.catalog = catalog
        self.broadcast = broadcast
        self.port = port
        self.log = getLogger()

        self.stats = StatsAccumulator(logSource)
        self.systemInfo = SystemInfoResolver(logSource, catalog)

        if definitions is None:
            definitions = defaultDefinitions(self)
        self.registry = DerivedEventRegistry(definitions)
        self.dispatcher = DerivedEventDispatcher(self.registry, broadcast)

        self.loading = LoadingController(self.stats, snapshotSource, logSource, broadcast,
                                         progressInterval=progressInterval)
        self.bridge = IngestionBridge(self.stats, self.dispatcher, logSource, broadcast,
                                      isSuppressed=lambda: self.loading.inProgress)

        snapshotSource.subscribe(onFile=self.bridge.onFileLoaded)
        logSource.subscribe(onFile=self.bridge.onFileLoaded, onRecord=self.bridge.onRecordParsed)

        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            'hostInfo': lambda message: self.hostInfo(),
            'loadingStats': lambda message: self.loadingStats(),
            'getCommander': lambda message: self.getCommander(),
            'getLogEntries': lambda message: self.getLogEntries(
                count=message.get('count', DEFAULT_LOG_ENTRY_COUNT),
                timestamp=message.get('timestamp')),
            'getSystem': lambda message: self.getSystem(name=message.get('name')),
            'start': self._handleStart,
            'init': self._handleStart
        }

    # ===== Request surface =====
    async def start(self, historyWindowDays: int = DEFAULT_HISTORY_WINDOW_DAYS) -> Dict[str, Any]:
        snapshot = await self.loading.start(historyWindowDays=historyWindowDays)
        return snapshot.toDict()

    async def hostInfo(self) -> Dict[str, Any]:
        return hostInfo(self.port)

    async def loadingStats(self) -> Dict[str, Any]:
        return self.stats.snapshot().toDict()

    async def getCommander(self) -> Dict[str, Any]:
        return commanderInfo(self.logSource.getEvent('LoadGame'))

    async def getLogEntries(self, count: int = DEFAULT_LOG_ENTRY_COUNT,
                            timestamp: Optional[str] = None) -> List[Dict[str, Any]]:
        if timestamp:
            return self.logSource.getFromTimestamp(timestamp)
        return self.logSource.getNewest(count)

    async def getSystem(self, name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return await self.systemInfo.getSystem(name)

    # ===== Dispatch by name =====
    @property
    def requestNames(self) -> List[str]:
        return list(self._handlers)

    async def handle(self, name: str, message: Optional[Dict[str, Any]] = None) -> Any:
        """Run one named request (message may be None)"""
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownRequestError(f"Unknown request: {name}")
        return await handler(message or {})

    async def _handleStart(self, message: Dict[str, Any]) -> Dict[str, Any]:
        days = message.get('historyWindowDays', message.get('days', DEFAULT_HISTORY_WINDOW_DAYS))
        return await self.start(historyWindowDays=days)

    async def stop(self):
        """Stop tailing and wait for in-flight derived events"""
        await self.snapshotSource.stop()
        await self.logSource.stop()
        await self.dispatcher.drain()
        self.log.info("[Engine] Stopped")
