"""
ICARUS Core Package

Bulk-load/tail ingestion, loading statistics, derived event dispatch and the
star system resolver behind the request surface.

Architecture Invariants:
- One IcarusEngine owns all mutable state (no module globals)
- Each file is counted once, each journal entry is ingested once
- No raw or derived broadcasts while the bulk load is in progress
- Catalog lookups are cached per system name for the engine lifetime
"""

from .engine import IcarusEngine, UnknownRequestError, defaultDefinitions
from .stats import LoadingPhase, LoadingStats, StatsAccumulator
from .derivedEvents import DerivedEventDefinition, DerivedEventRegistry, DerivedEventDispatcher
from .systemInfo import SystemInfoResolver, SystemMap, UNKNOWN_VALUE

__all__ = [
    'IcarusEngine',
    'UnknownRequestError',
    'defaultDefinitions',
    'LoadingPhase',
    'LoadingStats',
    'StatsAccumulator',
    'DerivedEventDefinition',
    'DerivedEventRegistry',
    'DerivedEventDispatcher',
    'SystemInfoResolver',
    'SystemMap',
    'UNKNOWN_VALUE'
]
