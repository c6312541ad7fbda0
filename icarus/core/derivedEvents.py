"""
Derived (composite) events synthesized from raw journal events.

A DerivedEventDefinition names the raw events that trigger it and an async
resolver producing its payload. The registry inverts the definitions once into
a read-only rawEventName -> derived names index.

Dispatch model:
- One task per triggered definition, started together, never joined
- Each task broadcasts its own payload on the definition name as soon as it resolves
- A failing resolver is logged and dropped; it never reaches the ingestion path
  or its sibling tasks
- The caller (ingestion bridge) must not dispatch while bulk loading is in progress

Property of Uncompromising Sensors LLC.
"""

import asyncio
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Mapping, Tuple

from sdk.logging import getLogger


Resolver = Callable[[], Awaitable[Any]]
BroadcastSink = Callable[[str, Any], None]


@dataclass(frozen=True)
class DerivedEventDefinition:
    """Composite event fired when any of its trigger events is ingested"""
    name: str
    triggers: FrozenSet[str]
    resolve: Resolver


class DerivedEventRegistry:
    """Immutable set of definitions plus the trigger index built from them"""

    def __init__(self, definitions: Iterable[DerivedEventDefinition]):
        byName: Dict[str, DerivedEventDefinition] = {}
        index: Dict[str, List[str]] = {}

        for definition in definitions:
            if definition.name in byName:
                raise ValueError(f"Duplicate derived event: {definition.name}")
            byName[definition.name] = definition
            for rawEventName in sorted(definition.triggers):
                index.setdefault(rawEventName, []).append(definition.name)

        self._definitions: Mapping[str, DerivedEventDefinition] = MappingProxyType(byName)
        self._index: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {raw: tuple(names) for raw, names in index.items()}
        )

    def handles(self, rawEventName: str) -> bool:
        return rawEventName in self._index

    def derivedFor(self, rawEventName: str) -> Tuple[DerivedEventDefinition, ...]:
        return tuple(self._definitions[name] for name in self._index.get(rawEventName, ()))

    def get(self, name: str) -> DerivedEventDefinition:
        return self._definitions[name]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._definitions)

    @property
    def index(self) -> Mapping[str, Tuple[str, ...]]:
        return self._index


class DerivedEventDispatcher:
    """Fire-and-forget fan-out of derived events"""

    def __init__(self, registry: DerivedEventRegistry, broadcast: BroadcastSink):
        self.registry = registry
        self.broadcast = broadcast
        self.log = getLogger()

        # Strong references so pending tasks are not garbage collected
        self._pending: set = set()

    def dispatch(self, eventName: str) -> List[asyncio.Task]:
        """Start one resolver task per definition triggered by eventName"""
        tasks = []
        for definition in self.registry.derivedFor(eventName):
            task = asyncio.create_task(self._run(definition), name=f"derived:{definition.name}")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)

        if tasks:
            self.log.debug(f"[Dispatch] {eventName} -> {len(tasks)} derived events")
        return tasks

    async def _run(self, definition: DerivedEventDefinition):
        try:
            payload = await definition.resolve()
        except Exception as e:
            self.log.error(f"[Dispatch] Resolver failed for {definition.name}: {e!r}",
                           exc_info=True, derivedEvent=definition.name)
            return
        self.broadcast(definition.name, payload)

    @property
    def pendingCount(self) -> int:
        return len(self._pending)

    async def drain(self):
        """Wait for every in-flight resolver (shutdown / tests)"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
