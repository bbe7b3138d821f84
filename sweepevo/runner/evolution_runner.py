import asyncio

from loguru import logger

from sweepevo.evolution.engine import EvolutionManager
from sweepevo.workers.pool import WorkerPool


class EvolutionRunner:
    """Owns the background task that drives one manager over one worker pool.

    The pool is started before the first generation and always closed when
    the task ends, whether it stopped, failed or was cancelled.
    """

    def __init__(self, manager: EvolutionManager, pool: WorkerPool) -> None:
        self._manager = manager
        self._pool = pool
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._task and not self._task.done():
            return
        if not self._pool.started:
            await self._pool.start()
        self._task = asyncio.create_task(self._drive(), name="evolution-manager")
        logger.info("[EvolutionRunner] Evolution started")

    async def stop(self) -> None:
        """Ask the manager to stop after the current generation and wait for it."""
        self._manager.stop()
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("[EvolutionRunner] Run ended with error: {}", exc)
            logger.info("[EvolutionRunner] Evolution stopped")

    async def wait(self) -> None:
        """Wait for the run to end; re-raises the run's failure, if any."""
        if self._task is not None:
            await asyncio.shield(self._task)

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_status(self) -> dict[str, object]:
        return self._manager.get_status()

    @property
    def manager(self) -> EvolutionManager:
        return self._manager

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    async def _drive(self) -> None:
        try:
            await self._manager.run()
        finally:
            await self._pool.close()
