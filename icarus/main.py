"""
ICARUS service main entry point.

Wires the record sources, EDSM client, engine and WebSocket edge into one
asyncio process, then runs the initial bulk load.

Usage:
    python -m icarus.main [--config icarus/config.json] [--port 3300] [--journal-dir DIR] [--days 30]

Property of Uncompromising Sensors LLC.
"""

import asyncio
import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import orjson

from icarus.core.engine import IcarusEngine, DEFAULT_HISTORY_WINDOW_DAYS
from icarus.server import IcarusServer, Broadcaster
from sdk.catalog import EdsmClient, DEFAULT_BASE_URL
from sdk.journal import EliteJson, EliteLog, JournalError, defaultJournalDir
from sdk.logging import getLogger, configureLogging


DEFAULT_CONFIG = {
    'host': '0.0.0.0',
    'port': 3300,
    'journalDir': None,
    'historyWindowDays': DEFAULT_HISTORY_WINDOW_DAYS,
    'pollIntervalSeconds': 1.0,
    'progressIntervalSeconds': 0.2,
    'edsm': {
        'baseUrl': DEFAULT_BASE_URL,
        'timeoutSeconds': 10.0
    },
    'logging': {
        'logDir': None,
        'level': 'INFO',
        'console': True
    }
}


def loadConfig(configPath: Optional[str]) -> Dict[str, Any]:
    """Load configuration from JSON file, filling defaults for missing keys"""
    config = {key: (dict(value) if isinstance(value, dict) else value)
              for key, value in DEFAULT_CONFIG.items()}
    if not configPath:
        return config

    with open(configPath, 'rb') as f:
        overrides = orjson.loads(f.read())

    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value
    return config


def applyArgs(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    if args.port is not None:
        config['port'] = args.port
    if args.journal_dir is not None:
        config['journalDir'] = args.journal_dir
    if args.days is not None:
        config['historyWindowDays'] = args.days
    return config


def buildParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='ICARUS - Elite Dangerous journal service')
    parser.add_argument('--config', default=None, help='Path to JSON config file')
    parser.add_argument('--port', type=int, default=None, help='Port the service listens on')
    parser.add_argument('--journal-dir', default=None, help='Elite Dangerous journal directory')
    parser.add_argument('--days', type=int, default=None, help='History window to load, in days')
    return parser


async def runService(config: Dict[str, Any]):
    log = getLogger()

    journalDir = Path(config['journalDir']) if config.get('journalDir') else defaultJournalDir()
    pollInterval = config['pollIntervalSeconds']
    log.info(f"[Main] Journal directory: {journalDir}")

    eliteJson = EliteJson(journalDir, pollIntervalSeconds=pollInterval)
    eliteLog = EliteLog(journalDir, pollIntervalSeconds=pollInterval)
    edsm = EdsmClient(config['edsm']['baseUrl'], timeoutSeconds=config['edsm']['timeoutSeconds'])

    broadcaster = Broadcaster()
    engine = IcarusEngine(eliteJson, eliteLog, edsm, broadcast=broadcaster.broadcast,
                          port=config['port'],
                          progressInterval=config['progressIntervalSeconds'])
    server = IcarusServer(config, requestHandler=engine.handle, broadcaster=broadcaster)

    try:
        await server.start()

        try:
            await engine.start(historyWindowDays=config['historyWindowDays'])
        except JournalError as e:
            # Keep serving: clients still get loadingStats with the failure left inProgress
            log.error(f"[Main] Initial load failed: {e}")

        while True:
            await asyncio.sleep(1)

    finally:
        await engine.stop()
        await server.stop()
        await edsm.close()
        log.info("[Main] Service stopped")


def main():
    args = buildParser().parse_args()

    if args.config and not Path(args.config).exists():
        print(f"Config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    config = applyArgs(loadConfig(args.config), args)

    loggingConfig = config['logging']
    configureLogging(logDir=loggingConfig.get('logDir'), level=loggingConfig.get('level', 'INFO'),
                     console=loggingConfig.get('console', True))
    log = getLogger()
    log.info("=" * 60)
    log.info("ICARUS - Elite Dangerous journal service")
    log.info("=" * 60)

    try:
        asyncio.run(runService(config))
    except KeyboardInterrupt:
        log.info("[Main] Shutdown signal received")


if __name__ == '__main__':
    main()
