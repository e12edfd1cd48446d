import asyncio
import logging
from typing import Dict, Optional

from .models import CardSchedule
from .store import ScheduleStore


class ScheduleSaver:
    """
    Background writer for schedule maps.

    submit() only records the latest snapshot per language and wakes the worker.
    The worker waits out the debounce window, then writes the newest snapshot it
    holds. At most one save is in flight, so an older snapshot can never land
    after a newer one. Failed saves are logged and dropped.
    """

    def __init__(self, store: ScheduleStore, debounce_seconds: float = 0.25):
        self.store = store
        self.debounce_seconds = debounce_seconds
        self._pending: Dict[str, Dict[str, CardSchedule]] = {}
        self._wakeup: Optional[asyncio.Event] = None
        self._idle: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self.saves_completed = 0
        self.saves_failed = 0

    def _ensure_worker(self):
        loop = asyncio.get_running_loop()
        if self._task is None or self._task.done() or self._task.get_loop() is not loop:
            self._wakeup = asyncio.Event()
            self._idle = asyncio.Event()
            self._idle.set()
            self._task = loop.create_task(self._run())

    def submit(self, language: str, snapshot: Dict[str, CardSchedule]) -> None:
        """Must be called from inside the running event loop."""
        self._ensure_worker()
        self._pending[language] = dict(snapshot)
        self._idle.clear()
        self._wakeup.set()

    async def _run(self):
        while True:
            await self._wakeup.wait()
            if self.debounce_seconds > 0:
                await asyncio.sleep(self.debounce_seconds)
            self._wakeup.clear()

            while self._pending:
                language, snapshot = self._pending.popitem()
                await self._save(language, snapshot)

            if not self._wakeup.is_set():
                self._idle.set()

    async def _save(self, language: str, snapshot: Dict[str, CardSchedule]):
        try:
            await asyncio.to_thread(self.store.set, language, snapshot)
        except Exception as e:
            # Best-effort: the in-memory map stays authoritative
            self.saves_failed += 1
            logging.error(f"Saving schedules for {language} failed: {e}")
            return
        self.saves_completed += 1
        logging.debug(f"Saved {len(snapshot)} schedules for {language}")

    def _worker_running(self) -> bool:
        return (
            self._task is not None
            and not self._task.done()
            and self._task.get_loop() is asyncio.get_running_loop()
        )

    async def flush(self) -> None:
        """Waits until everything submitted so far has been written (or failed)."""
        if not self._worker_running():
            return
        await self._idle.wait()

    async def close(self) -> None:
        if not self._worker_running():
            self._task = None
            return
        await self.flush()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
