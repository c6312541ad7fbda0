"""
Engine integration tests against in-memory sources.

Test Coverage:
1. Historical LoadGame/FSDJump do not fire derived events; live ones do
2. Request surface by name (start/init alias, loadingStats, getLogEntries, unknown)
3. getCommander with and without LoadGame
4. hostInfo from the host's IPv4 interfaces
"""

import socket
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from icarus.core import IcarusEngine, UnknownRequestError, UNKNOWN_VALUE
from icarus.core import queries
from icarus.core.ingestion import NEW_LOG_ENTRY
from icarus.core.loading import LOADING_PROGRESS
from fakes import BroadcastRecorder, FakeSnapshotSource, FakeLogSource, FakeCatalog, journalEntry


HISTORY = [
    journalEntry('LoadGame', '2024-04-30T10:00:00Z', Commander='Jameson', Credits=1000),
    journalEntry('FSDJump', '2024-04-30T10:05:00Z', StarSystem='Lave', Population=None),
    journalEntry('Scan', '2024-04-30T10:06:00Z', BodyName='Lave 1')
]


def makeEngine(entries=None, files=None):
    broadcast = BroadcastRecorder()
    snapshotSource = FakeSnapshotSource(files=[{'name': 'Status.json', 'size': 200, 'lineCount': None}])
    logSource = FakeLogSource(entries=list(entries or []), files=files)
    catalog = FakeCatalog(bodies={'Lave': [{'name': 'Lave 1'}], 'Diso': [{'name': 'Diso 5'}]})
    engine = IcarusEngine(snapshotSource, logSource, catalog, broadcast=broadcast,
                          port=3300, progressInterval=0.01)
    return engine, logSource, broadcast


class TestEngineFlow:

    @pytest.mark.asyncio
    async def test_history_silent_live_broadcast(self):
        files = [{'name': 'Journal.2024-04-30T100000.01.log', 'size': 900, 'lineCount': 3}]
        engine, logSource, broadcast = makeEngine(HISTORY, files=files)

        stats = await engine.start()
        await engine.dispatcher.drain()

        assert stats['loadingComplete'] is True
        assert stats['numberOfFiles'] == 2
        assert stats['logSizeInBytes'] == 1100
        assert stats['numberOfLogLines'] == 3
        assert stats['numberOfEventsImported'] == 3
        assert stats['eventTypesLoaded'] == {'Scan': 1}
        assert broadcast.named(NEW_LOG_ENTRY) == []
        assert broadcast.named('IcarusGameLoadedEvent') == []
        assert broadcast.named('IcarusSystemChangedEvent') == []

        jump = journalEntry('FSDJump', '2024-05-01T09:00:00Z', StarSystem='Diso',
                            SystemAllegiance='Independent')
        logSource.push(jump)
        await engine.dispatcher.drain()

        assert broadcast.named(NEW_LOG_ENTRY) == [jump]
        changed = broadcast.named('IcarusSystemChangedEvent')
        assert len(changed) == 1
        assert changed[0]['name'] == 'Diso'
        assert changed[0]['allegiance'] == 'Independent'
        assert changed[0]['bodies'] == [{'name': 'Diso 5'}]

        logSource.push(journalEntry('LoadGame', '2024-05-01T09:10:00Z', Commander='Jameson', Credits=5000))
        await engine.dispatcher.drain()

        assert broadcast.named('IcarusGameLoadedEvent') == [{'commander': 'Jameson', 'credits': 5000}]
        await engine.stop()

    @pytest.mark.asyncio
    async def test_progress_broadcast(self):
        engine, _, broadcast = makeEngine(HISTORY)

        await engine.start()

        progress = broadcast.named(LOADING_PROGRESS)
        assert progress[0]['loadingInProgress'] is True
        assert progress[-1]['loadingComplete'] is True

    @pytest.mark.asyncio
    async def test_trigger_events_not_counted(self):
        """LoadGame and FSDJump feed derived events, not eventTypesLoaded"""
        engine, logSource, _ = makeEngine()
        await engine.start()

        logSource.push(journalEntry('LoadGame', '2024-05-01T09:00:00Z', Commander='Jameson'))
        logSource.push(journalEntry('FSDJump', '2024-05-01T09:05:00Z', StarSystem='Lave'))
        logSource.push(journalEntry('Docked', '2024-05-01T09:10:00Z'))
        await engine.dispatcher.drain()

        stats = await engine.loadingStats()
        assert stats['eventTypesLoaded'] == {'Docked': 1}
        assert stats['numberOfEventsImported'] == 3


class TestRequestSurface:

    @pytest.mark.asyncio
    async def test_unknown_request(self):
        engine, _, _ = makeEngine()

        with pytest.raises(UnknownRequestError):
            await engine.handle('selfDestruct')

    @pytest.mark.asyncio
    async def test_init_alias_with_days(self):
        engine, logSource, _ = makeEngine(HISTORY)

        stats = await engine.handle('init', {'days': 3})

        assert logSource.windowDays == 3
        assert stats['loadingComplete'] is True
        again = await engine.handle('start', {'historyWindowDays': 10})
        assert again['loadingComplete'] is True
        assert logSource.loadCount == 1

    @pytest.mark.asyncio
    async def test_loading_stats_before_start(self):
        engine, _, _ = makeEngine()

        stats = await engine.handle('loadingStats')

        assert stats['phase'] == 'notStarted'
        assert stats['numberOfFiles'] == 0

    @pytest.mark.asyncio
    async def test_get_log_entries(self):
        engine, _, _ = makeEngine(HISTORY)
        await engine.start()

        newest = await engine.handle('getLogEntries', {'count': 2})
        assert [e['event'] for e in newest] == ['Scan', 'FSDJump']

        since = await engine.handle('getLogEntries', {'timestamp': '2024-04-30T10:05:00Z'})
        assert [e['event'] for e in since] == ['Scan', 'FSDJump']

        default = await engine.handle('getLogEntries')
        assert len(default) == 3

    @pytest.mark.asyncio
    async def test_get_commander(self):
        engine, _, _ = makeEngine()
        assert await engine.handle('getCommander') == {'commander': UNKNOWN_VALUE, 'credits': UNKNOWN_VALUE}

        engine, _, _ = makeEngine(HISTORY)
        await engine.start()
        assert await engine.getCommander() == {'commander': 'Jameson', 'credits': 1000}

    @pytest.mark.asyncio
    async def test_get_system_by_name(self):
        engine, _, _ = makeEngine(HISTORY)
        await engine.start()

        lave = await engine.handle('getSystem')
        assert lave['name'] == 'Lave'
        assert lave['population'] == UNKNOWN_VALUE

        diso = await engine.handle('getSystem', {'name': 'Diso'})
        assert diso['allegiance'] == UNKNOWN_VALUE

    @pytest.mark.asyncio
    async def test_host_info(self, monkeypatch):
        interfaces = {
            'lo': [SimpleNamespace(family=socket.AF_INET, address='127.0.0.1')],
            'eth0': [
                SimpleNamespace(family=socket.AF_INET, address='192.168.1.20'),
                SimpleNamespace(family=socket.AF_INET6, address='fe80::1')
            ]
        }
        monkeypatch.setattr(queries.psutil, 'net_if_addrs', lambda: interfaces)
        engine, _, _ = makeEngine()

        info = await engine.handle('hostInfo')

        assert info == {'urls': ['http://192.168.1.20:3300']}

    def test_request_names(self):
        engine, _, _ = makeEngine()
        assert set(engine.requestNames) == {
            'hostInfo', 'loadingStats', 'getCommander', 'getLogEntries', 'getSystem', 'start', 'init'
        }
