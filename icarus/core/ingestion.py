"""
Ingestion callback bridge between the record sources and the service core.

Ingest Flow (per journal entry):
  1. Refresh eventsImportedCount from the log source (source of truth for distinct records)
  2. Entry triggers derived events -> dispatch them (skipped while bulk loading)
     otherwise -> count it under its event type
  3. Not bulk loading -> broadcast the entry unmodified on 'newLogEntry'

Per file: first sighting of a name adds its size/line count; repeats are ignored.
"""

from typing import Any, Callable, Dict

from .stats import StatsAccumulator
from .derivedEvents import DerivedEventDispatcher
from sdk.logging import getLogger


NEW_LOG_ENTRY = 'newLogEntry'


class IngestionBridge:
    """
    Callbacks handed to the record sources via subscribe().

    Never calls the sources on its own apart from reading log stats.
    """

    def __init__(self, stats: StatsAccumulator, dispatcher: DerivedEventDispatcher,
                 logSource, broadcast: Callable[[str, Any], None],
                 isSuppressed: Callable[[], bool]):
        """
        Args:
            stats: Accumulator to update
            dispatcher: Derived event dispatcher (its registry decides what triggers)
            logSource: LogSource whose stats() supplies eventsImportedCount
            broadcast: Broadcast sink (name, payload)
            isSuppressed: True while the bulk load is in progress
        """
        self.stats = stats
        self.dispatcher = dispatcher
        self.logSource = logSource
        self.broadcast = broadcast
        self.isSuppressed = isSuppressed
        self.log = getLogger()

    def onFileLoaded(self, file: Dict[str, Any]) -> None:
        name = file['name']
        if self.stats.recordFile(name, file.get('size', 0), file.get('lineCount')):
            self.log.debug(f"[Ingest] File loaded: {name}", size=file.get('size', 0))

    def onRecordParsed(self, record: Dict[str, Any]) -> None:
        eventName = record.get('event')

        self.stats.setEventsImported(self.logSource.stats()['eventsImportedCount'])

        suppressed = self.isSuppressed()
        if self.dispatcher.registry.handles(eventName):
            if not suppressed:
                self.dispatcher.dispatch(eventName)
        else:
            self.stats.countEventType(eventName)

        if not suppressed:
            self.broadcast(NEW_LOG_ENTRY, record)
