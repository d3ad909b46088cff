"""Bounded-concurrency admission of pending entries into analysis."""

from __future__ import annotations

import asyncio
import logging

from magindex.analysis.task import AnalysisTask
from magindex.library.lifecycle import begin_analysis, is_admissible
from magindex.library.store import EntryStore

LOGGER = logging.getLogger(__name__)

DEFAULT_BUDGET = 3


class Scheduler:
    """Keep at most ``budget`` entries in ``analyzing``.

    Admission is derived from entry status alone: an entry is admitted exactly
    when it is ``analyzing``. Each pass marks the chosen entries ``analyzing``
    in the store before their tasks are created, and each finished task runs
    another pass, so the pump keeps going until no admissible entry is left.
    """

    def __init__(
        self,
        store: EntryStore,
        task: AnalysisTask,
        *,
        budget: int = DEFAULT_BUDGET,
    ) -> None:
        if budget < 1:
            raise ValueError("The concurrency budget must be at least 1.")
        self._store = store
        self._task = task
        self._budget = budget
        self._tasks: set[asyncio.Task[None]] = set()
        self._detached: set[asyncio.Task[None]] = set()
        self._peak = 0

    @property
    def budget(self) -> int:
        return self._budget

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def peak(self) -> int:
        """Highest number of simultaneously analyzing entries seen so far."""
        return self._peak

    def pump(self) -> list[str]:
        """Admit pending entries up to the remaining budget.

        Must be called from a running event loop.

        Returns:
            list[str]: Identities admitted by this pass.
        """
        room = self._budget - self._store.count("analyzing")
        if room <= 0:
            return []

        selected = [entry for entry in self._store if is_admissible(entry)][:room]
        if not selected:
            return []

        for entry in selected:
            self._store.upsert(begin_analysis(entry))
        self._peak = max(self._peak, self._store.count("analyzing"))

        loop = asyncio.get_running_loop()
        for entry in selected:
            LOGGER.debug("Admitted %s for analysis.", entry.original_name)
            task = loop.create_task(self._run(entry.identity))
            self._tasks.add(task)
            task.add_done_callback(self._forget)
        return [entry.identity for entry in selected]

    async def drain(self) -> None:
        """Run the pump until nothing is in flight and nothing is admissible."""
        self.pump()
        while self._tasks:
            await asyncio.wait(set(self._tasks))
            self.pump()

    def reset(self) -> None:
        """Forget in-flight bookkeeping.

        Tasks already running are kept alive until they finish; their results
        are dropped because their entries are gone from the store.
        """
        self._detached.update(self._tasks)
        self._tasks = set()
        self._peak = 0

    async def _run(self, identity: str) -> None:
        try:
            await self._task.run(identity)
        except Exception:
            LOGGER.exception("Unexpected failure while analyzing %s.", identity)
        finally:
            self.pump()

    def _forget(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        self._detached.discard(task)


__all__ = ["Scheduler", "DEFAULT_BUDGET"]
