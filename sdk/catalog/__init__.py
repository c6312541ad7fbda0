"""sdk.catalog - external star-system catalog clients.

Public API:
    - EdsmClient: EDSM bodies/stations lookups over aiohttp
    - CatalogError: raised on any lookup failure
"""

from .edsm import EdsmClient, CatalogError, DEFAULT_BASE_URL

__all__ = [
    'EdsmClient',
    'CatalogError',
    'DEFAULT_BASE_URL'
]
