"""
Derived event registry and dispatcher tests.

Test Coverage:
1. Trigger index built once from the definitions
2. Duplicate definition names rejected
3. Index is read-only
4. One raw event fanning out to several derived events
5. A failing resolver does not affect its siblings or the caller
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from icarus.core.derivedEvents import DerivedEventDefinition, DerivedEventRegistry, DerivedEventDispatcher
from fakes import BroadcastRecorder


def payload(value):
    async def resolve():
        return value
    return resolve


class TestRegistry:
    """Inverted trigger index"""

    def test_index(self):
        registry = DerivedEventRegistry([
            DerivedEventDefinition('Docking', frozenset({'Docked', 'Undocked'}), payload(1)),
            DerivedEventDefinition('Arrival', frozenset({'Docked'}), payload(2))
        ])

        assert registry.handles('Docked')
        assert registry.handles('Undocked')
        assert not registry.handles('Scan')
        assert registry.index['Docked'] == ('Docking', 'Arrival')
        assert registry.index['Undocked'] == ('Docking',)
        assert [d.name for d in registry.derivedFor('Docked')] == ['Docking', 'Arrival']
        assert registry.derivedFor('Scan') == ()
        assert registry.names == ('Docking', 'Arrival')

    def test_duplicate_name_rejected(self):
        with pytest.raises(ValueError):
            DerivedEventRegistry([
                DerivedEventDefinition('Docking', frozenset({'Docked'}), payload(1)),
                DerivedEventDefinition('Docking', frozenset({'Undocked'}), payload(2))
            ])

    def test_index_read_only(self):
        registry = DerivedEventRegistry([
            DerivedEventDefinition('Docking', frozenset({'Docked'}), payload(1))
        ])

        with pytest.raises(TypeError):
            registry.index['Scan'] = ('Docking',)
        assert not registry.handles('Scan')

    def test_empty_registry(self):
        registry = DerivedEventRegistry([])
        assert not registry.handles('LoadGame')
        assert registry.names == ()


class TestDispatcher:
    """Fire-and-forget fan-out"""

    @pytest.mark.asyncio
    async def test_fan_out(self):
        """Two definitions on one trigger broadcast independently"""
        broadcast = BroadcastRecorder()
        registry = DerivedEventRegistry([
            DerivedEventDefinition('A', frozenset({'Docked'}), payload({'a': 1})),
            DerivedEventDefinition('B', frozenset({'Docked'}), payload({'b': 2}))
        ])
        dispatcher = DerivedEventDispatcher(registry, broadcast)

        tasks = dispatcher.dispatch('Docked')
        assert len(tasks) == 2
        await dispatcher.drain()

        assert sorted(broadcast.messages) == [('A', {'a': 1}), ('B', {'b': 2})]
        assert dispatcher.pendingCount == 0

    @pytest.mark.asyncio
    async def test_broadcast_on_definition_name(self):
        broadcast = Mock()
        registry = DerivedEventRegistry([
            DerivedEventDefinition('IcarusGameLoadedEvent', frozenset({'LoadGame'}), payload({'commander': 'Jameson'}))
        ])
        dispatcher = DerivedEventDispatcher(registry, broadcast)

        dispatcher.dispatch('LoadGame')
        await dispatcher.drain()

        broadcast.assert_called_once_with('IcarusGameLoadedEvent', {'commander': 'Jameson'})

    @pytest.mark.asyncio
    async def test_no_match_starts_nothing(self):
        broadcast = BroadcastRecorder()
        dispatcher = DerivedEventDispatcher(DerivedEventRegistry([]), broadcast)

        assert dispatcher.dispatch('Scan') == []
        await dispatcher.drain()
        assert broadcast.messages == []

    @pytest.mark.asyncio
    async def test_failure_isolated(self):
        """One resolver raising leaves the other broadcast intact"""
        broadcast = BroadcastRecorder()

        async def broken():
            raise RuntimeError("catalog exploded")

        registry = DerivedEventRegistry([
            DerivedEventDefinition('Broken', frozenset({'FSDJump'}), broken),
            DerivedEventDefinition('Fine', frozenset({'FSDJump'}), payload('ok'))
        ])
        dispatcher = DerivedEventDispatcher(registry, broadcast)

        dispatcher.dispatch('FSDJump')
        await dispatcher.drain()

        assert broadcast.messages == [('Fine', 'ok')]

    @pytest.mark.asyncio
    async def test_dispatch_does_not_wait(self):
        """dispatch returns before a slow resolver finishes"""
        broadcast = BroadcastRecorder()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return 'late'

        registry = DerivedEventRegistry([DerivedEventDefinition('Slow', frozenset({'LoadGame'}), slow)])
        dispatcher = DerivedEventDispatcher(registry, broadcast)

        dispatcher.dispatch('LoadGame')
        await asyncio.sleep(0)
        assert dispatcher.pendingCount == 1
        assert broadcast.messages == []

        release.set()
        await dispatcher.drain()
        assert broadcast.messages == [('Slow', 'late')]
