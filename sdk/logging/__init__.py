"""
SDK Logging - hierarchical structured logger shared by the service and its adapters.

API:
    from sdk.logging import getLogger

    class LoadingController:
        def __init__(self):
            self.log = getLogger()  # Auto: 'icarus.core.loading.LoadingController'

        def start(self):
            self.log.info("[Loading] Started", days=30)

    # Global configuration (once at app startup)
    from sdk.logging import configureLogging
    configureLogging(logDir='logs', level='DEBUG')
"""

from .logger import getLogger, configureLogging, StructuredFormatter

__all__ = [
    'getLogger',
    'configureLogging',
    'StructuredFormatter'
]
