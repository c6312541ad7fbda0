"""sdk.journal - Elite Dangerous journal record sources.

Public API:
    - SnapshotSource / LogSource: abstract bases consumed by the service core
    - EliteJson: companion JSON snapshot reader
    - EliteLog: Journal.*.log reader with polling tail
    - JournalError: I/O failure while loading
    - defaultJournalDir: the game's default journal location

Usage:
    from sdk.journal import EliteLog

    eliteLog = EliteLog(defaultJournalDir())
    eliteLog.subscribe(onRecord=lambda entry: print(entry['event']))
    await eliteLog.load(windowDays=7)
    eliteLog.watch()
"""

from pathlib import Path

from .base import SnapshotSource, LogSource, JournalError
from .eliteJson import EliteJson
from .eliteLog import EliteLog
from .canonical import canonicalJson, entryKey


def defaultJournalDir() -> Path:
    return Path.home() / 'Saved Games' / 'Frontier Developments' / 'Elite Dangerous'


__all__ = [
    'SnapshotSource',
    'LogSource',
    'JournalError',
    'EliteJson',
    'EliteLog',
    'canonicalJson',
    'entryKey',
    'defaultJournalDir'
]
