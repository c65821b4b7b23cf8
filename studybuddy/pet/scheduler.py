"""
Timers of a pet session

The decay check and the motivation ticker run as asyncio tasks owned by a
PetSession; leaving the session always cancels them.
"""
import asyncio
import inspect
import logging
from typing import Callable, Optional

from ..common.data_manager import PersistenceError
from .logic import PetLogic

logger = logging.getLogger(__name__)


class RecurringTask:
    """
    Calls a function every `interval` seconds on the running event loop;
    a coroutine returned by the callback is awaited before the next sleep.

    A PersistenceError from the callback is logged and the timer keeps going;
    anything else ends the task and is raised again from stop().
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], object]):
        if interval <= 0:
            raise ValueError(f"{name}: interval must be positive")
        self.name = name
        self.interval = interval
        self.callback = callback
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            raise RuntimeError(f"{self.name} is already running")
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)

    async def stop(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _loop(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except PersistenceError as e:
                logger.warning("%s: save failed, will retry next tick: %s", self.name, e)
            self.runs += 1


class PetSession:
    """
    Async context manager running the passive processes of one pet.

        async with PetSession(logic) as session:
            ...  # UI drives logic.feed() / logic.play() ...
        # timers are cancelled here, even on error
    """

    def __init__(self, logic: PetLogic, decay_interval: Optional[float] = None,
                 motivation_interval: Optional[float] = None):
        self.logic = logic
        config = logic.config
        self.decay = RecurringTask(
            "pet-decay", decay_interval or config.decay_interval, logic.async_check_decay)
        self.motivation = RecurringTask(
            "pet-motivation", motivation_interval or config.motivation_interval, logic.motivate)

    @property
    def running(self) -> bool:
        return self.decay.running or self.motivation.running

    def start(self):
        self.decay.start()
        self.motivation.start()
        logger.info("pet session started for %s", self.logic.user_id or self.logic.pet.id)

    async def close(self):
        try:
            await self.decay.stop()
        finally:
            await self.motivation.stop()
        logger.info("pet session closed for %s", self.logic.user_id or self.logic.pet.id)

    async def __aenter__(self) -> 'PetSession':
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            await self.close()
            return
        # the body already failed; a crashed timer must not replace its error
        try:
            await self.close()
        except Exception:
            logger.exception("pet timer failed while the session was unwinding")
