"""
EDSM catalog client (https://www.edsm.net/en/api-system-v1).

API:
    edsm = EdsmClient()
    bodies = await edsm.bodies('Sol')      # list of body dicts ([] if EDSM knows none)
    stations = await edsm.stations('Sol')  # list of station dicts
    await edsm.close()

Errors:
    Any transport failure, timeout, non-200 status or undecodable body raises
    CatalogError. Nothing is retried here; callers decide.

Property of Uncompromising Sensors LLC.
"""


# Imports
import asyncio
from typing import Optional, Dict, Any, List

import aiohttp
import orjson

# Local imports
from sdk.logging import getLogger


DEFAULT_BASE_URL = 'https://www.edsm.net'


class CatalogError(Exception):
    """Catalog lookup failure"""
    pass


class EdsmClient:
    """Async EDSM system catalog client (one shared aiohttp session)"""

    def __init__(self, baseUrl: str = DEFAULT_BASE_URL, timeoutSeconds: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.baseUrl = baseUrl.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeoutSeconds)
        self.log = getLogger()
        self._session = session
        self._ownsSession = session is None

    async def bodies(self, systemName: str) -> List[Dict[str, Any]]:
        response = await self._get('/api-system-v1/bodies', systemName)
        return response.get('bodies') or []

    async def stations(self, systemName: str) -> List[Dict[str, Any]]:
        response = await self._get('/api-system-v1/stations', systemName)
        return response.get('stations') or []

    async def _get(self, path: str, systemName: str) -> Dict[str, Any]:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._ownsSession = True

        url = f"{self.baseUrl}{path}"
        try:
            async with self._session.get(url, params={'systemName': systemName}) as resp:
                if resp.status != 200:
                    raise CatalogError(f"EDSM {path} returned HTTP {resp.status} for {systemName}")
                body = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CatalogError(f"EDSM {path} request failed for {systemName}: {e!r}") from e

        self.log.debug(f"[EDSM] {path}", systemName=systemName, bytes=len(body))

        try:
            response = orjson.loads(body) if body.strip() else {}
        except orjson.JSONDecodeError as e:
            raise CatalogError(f"EDSM {path} returned invalid JSON for {systemName}: {e}") from e

        # EDSM answers [] or {} for systems it has never seen
        return response if isinstance(response, dict) else {}

    async def close(self) -> None:
        if self._session and self._ownsSession and not self._session.closed:
            await self._session.close()
        self._session = None
