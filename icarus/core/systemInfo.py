"""
Star system info: catalog cache merged with the live FSDJump journal fact.

Merge rule:
  cached SystemMap (bodies, stations)         - fetched once per name, never refreshed
  + live fields from the latest FSDJump       - only if FSDJump.StarSystem == name
  + UNKNOWN for every live field              - otherwise (shape never changes)

Catalog failures propagate to the caller and are not cached; the next request
for the same name fetches again. A failed half of the bodies/stations pair
cancels the other before the lock is released.

Responses are copies; the cached SystemMap is never handed out.
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional

from sdk.logging import getLogger


UNKNOWN_VALUE = 'Unknown'
JUMP_EVENT = 'FSDJump'


class SystemMap:
    """Cached catalog view of one system"""

    def __init__(self, name: str, bodies: List[Dict[str, Any]], stations: List[Dict[str, Any]]):
        self.name = name
        self.bodies = bodies
        self.stations = stations

    @property
    def objectsInSystem(self) -> List[Dict[str, Any]]:
        """Bodies and stations in one list, each tagged with its kind"""
        objects = [{**copy.deepcopy(body), '_kind': 'body'} for body in self.bodies]
        objects.extend({**copy.deepcopy(station), '_kind': 'station'} for station in self.stations)
        return objects

    def toDict(self) -> Dict[str, Any]:
        """Detached copy, safe to hand to callers"""
        return {
            'name': self.name,
            'bodies': copy.deepcopy(self.bodies),
            'stations': copy.deepcopy(self.stations),
            'objectsInSystem': self.objectsInSystem
        }


def known(value):
    return UNKNOWN_VALUE if value is None else value


def liveFields(jump: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Live system attributes from an FSDJump entry (UNKNOWN where absent or null)"""
    jump = jump or {}
    return {
        'address': known(jump.get('SystemAddress')),
        'position': known(jump.get('StarPos')),
        'allegiance': known(jump.get('SystemAllegiance')),
        'government': known(jump.get('SystemGovernment_Localised')),
        'security': known(jump.get('SystemSecurity_Localised')),
        'economy': {
            'primary': known(jump.get('SystemEconomy_Localised')),
            'secondary': known(jump.get('SystemSecondEconomy_Localised'))
        },
        'population': known(jump.get('Population')),
        'faction': known((jump.get('SystemFaction') or {}).get('Name'))
    }


class SystemInfoResolver:
    """getSystem() with a process-lifetime cache of catalog lookups"""

    def __init__(self, logSource, catalog):
        """
        Args:
            logSource: LogSource for the latest FSDJump
            catalog: Client with async bodies(name) / stations(name)
        """
        self.logSource = logSource
        self.catalog = catalog
        self.log = getLogger()

        self._cache: Dict[str, SystemMap] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def getSystem(self, name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        jump = self.logSource.getEvent(JUMP_EVENT)

        systemName = name
        if not systemName:
            systemName = (jump or {}).get('StarSystem')
            if not systemName:
                return None

        systemMap = await self._getCached(systemName)

        if jump is not None and jump.get('StarSystem') == systemName:
            live = liveFields(jump)
        else:
            live = liveFields(None)

        return {**systemMap.toDict(), **live}

    async def _getCached(self, systemName: str) -> SystemMap:
        cached = self._cache.get(systemName)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(systemName, asyncio.Lock())
        async with lock:
            # Another request may have filled it while we waited
            cached = self._cache.get(systemName)
            if cached is not None:
                return cached

            bodies, stations = await self._fetch(systemName)
            systemMap = SystemMap(systemName, bodies, stations)
            self._cache[systemName] = systemMap
            self.log.info(f"[SystemInfo] Cached {systemName}", bodies=len(bodies), stations=len(stations))
            return systemMap

    async def _fetch(self, systemName: str):
        """Bodies and stations concurrently; one failing cancels the other"""
        tasks = (
            asyncio.create_task(self.catalog.bodies(systemName)),
            asyncio.create_task(self.catalog.stations(systemName))
        )
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def isCached(self, systemName: str) -> bool:
        return systemName in self._cache
