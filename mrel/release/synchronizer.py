"""Cross-unit synchronization for one release run.

One ``Synchronizer`` is built per run and shared by every unit task. All of
its state lives on the event loop thread, so no locking is involved; every
operation that changes state is synchronous and therefore atomic with
respect to the other tasks.

Primitives:
- signals: one-shot, idempotent, never un-fire (``signal`` / ``wait``)
- hand-offs: one-shot per (topic, unit), granted at most once per unit
  (``grant_next`` / ``wait_for``), with at most one holder per topic
- barriers: fire once every active in-scope unit satisfies a condition
  (``barrier``); ``retire`` re-evaluates them when a unit leaves the run
- elections: the first caller for a topic wins (``elect``)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import structlog

from mrel.release.unit import Unit

UnitPredicate = Callable[[Unit], bool]

log = structlog.get_logger()


def _everyone(_unit: Unit) -> bool:
    return True


@dataclass(frozen=True, slots=True)
class _Barrier:
    condition: UnitPredicate
    scope: UnitPredicate


class Synchronizer:
    def __init__(self, units: Sequence[Unit]) -> None:
        self._units = list(units)
        self._signals: dict[str, asyncio.Event] = {}
        self._handoffs: dict[tuple[str, str], asyncio.Event] = {}
        self._granted: dict[str, set[str]] = {}
        self._holders: dict[str, str] = {}
        self._elected: set[str] = set()
        self._barriers: dict[str, _Barrier] = {}

    # -- signals -------------------------------------------------------------

    def _event(self, topic: str) -> asyncio.Event:
        event = self._signals.get(topic)
        if event is None:
            event = self._signals[topic] = asyncio.Event()
        return event

    def fired(self, topic: str) -> bool:
        return self._event(topic).is_set()

    def signal(self, topic: str) -> None:
        event = self._event(topic)
        if event.is_set():
            return
        event.set()
        self._barriers.pop(topic, None)
        log.debug("signal_fired", topic=topic)

    async def wait(self, topic: str) -> None:
        await self._event(topic).wait()

    # -- hand-offs -----------------------------------------------------------

    def _handoff(self, topic: str, name: str) -> asyncio.Event:
        key = (topic, name)
        event = self._handoffs.get(key)
        if event is None:
            event = self._handoffs[key] = asyncio.Event()
        return event

    def was_granted(self, topic: str, unit: Unit) -> bool:
        return unit.name in self._granted.get(topic, set())

    def holds(self, topic: str, unit: Unit) -> bool:
        return self._holders.get(topic) == unit.name

    def grant_next(self, topic: str, candidate: Unit | None) -> bool:
        """Hand the ``topic`` baton to ``candidate`` if it is free and unused by them."""
        if candidate is None or topic in self._holders or self.was_granted(topic, candidate):
            return False
        self._holders[topic] = candidate.name
        self._granted.setdefault(topic, set()).add(candidate.name)
        self._handoff(topic, candidate.name).set()
        log.debug("baton_granted", topic=topic, unit=candidate.name)
        return True

    def release(self, topic: str, unit: Unit) -> None:
        if self.holds(topic, unit):
            del self._holders[topic]
            log.debug("baton_released", topic=topic, unit=unit.name)

    def pass_on(self, topic: str, unit: Unit, eligible: UnitPredicate) -> Unit | None:
        """Release the baton held by ``unit`` and grant it to the next eligible unit."""
        self.release(topic, unit)
        successor = self.find(lambda u: eligible(u) and not self.was_granted(topic, u))
        if successor is not None and self.grant_next(topic, successor):
            return successor
        return None

    async def wait_for(self, topic: str, unit: Unit) -> None:
        await self._handoff(topic, unit.name).wait()

    # -- barriers ------------------------------------------------------------

    async def barrier(
        self,
        topic: str,
        condition: UnitPredicate,
        scope: UnitPredicate = _everyone,
    ) -> None:
        """Wait until ``condition`` holds for every active unit in ``scope``.

        The first caller registers the condition for ``topic``; later callers
        of the same topic only trigger a re-evaluation.
        """
        if not self.fired(topic):
            self._barriers.setdefault(topic, _Barrier(condition, scope))
            self._evaluate(topic)
        await self.wait(topic)

    def _evaluate(self, topic: str) -> None:
        pending = self._barriers.get(topic)
        if pending is None:
            return
        members = [u for u in self.todo() if pending.scope(u)]
        if all(pending.condition(u) for u in members):
            log.debug("barrier_fired", topic=topic, members=len(members))
            self.signal(topic)

    def refresh(self) -> None:
        """Re-evaluate every pending barrier."""
        for topic in list(self._barriers):
            self._evaluate(topic)

    def retire(self, unit: Unit) -> None:
        """Remove ``unit`` from every future barrier scope."""
        if unit.terminated:
            return
        unit.terminated = True
        log.debug("unit_retired", unit=unit.name, state=str(unit.state))
        self.refresh()

    # -- elections and queries -----------------------------------------------

    def elect(self, topic: str) -> bool:
        if topic in self._elected:
            return False
        self._elected.add(topic)
        return True

    def todo(self) -> list[Unit]:
        """Active units, in enumeration order."""
        return [u for u in self._units if not u.terminated]

    def find(self, condition: UnitPredicate) -> Unit | None:
        return next((u for u in self.todo() if condition(u)), None)
