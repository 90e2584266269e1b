import asyncio
import time
from abc import ABC, abstractmethod

from src.shared.infrastructure.observability.logger import bind_context, get_logger

logger = get_logger(__name__)


class BaseWorker(ABC):
    """
    Base class for all background loops.

    ``execute`` runs once per cycle; between cycles the worker waits
    ``interval`` seconds or until shutdown is requested, whichever comes
    first. A cycle that raises is logged and the loop carries on.
    """

    def __init__(self, worker_name: str, interval: float = 60, startup_delay: float = 0):
        self.worker_name = worker_name
        self.interval = interval
        self.startup_delay = startup_delay
        self.is_running = False
        self.shutdown_event = asyncio.Event()

    async def initialize(self) -> None:
        """Hook run once before the first cycle."""

    async def shutdown(self) -> None:
        """Request a graceful stop; the current cycle is allowed to finish."""
        self.shutdown_event.set()
        logger.info("worker_shutdown_requested", worker=self.worker_name)

    @property
    def stopping(self) -> bool:
        return self.shutdown_event.is_set()

    async def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``. Returns True if shutdown was requested meanwhile."""
        if seconds <= 0:
            return self.stopping
        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        return self.stopping

    async def run(self) -> None:
        """Main worker loop."""
        self.is_running = True
        bind_context(worker=self.worker_name)
        logger.info("worker_started", worker=self.worker_name, interval=self.interval)
        try:
            if await self.wait(self.startup_delay):
                return
            await self.initialize()

            while not self.stopping:
                start_time = time.monotonic()
                try:
                    success = await self.execute()
                except asyncio.CancelledError:
                    logger.info("worker_cancelled", worker=self.worker_name)
                    raise
                except Exception:
                    logger.exception("worker_cycle_failed", worker=self.worker_name)
                    success = False

                duration = time.monotonic() - start_time
                if success:
                    logger.debug("worker_cycle_completed", worker=self.worker_name, duration=round(duration, 3))
                else:
                    logger.warning("worker_cycle_completed_with_errors", worker=self.worker_name, duration=round(duration, 3))

                if await self.wait(self.interval):
                    break
        finally:
            self.is_running = False
            logger.info("worker_stopped", worker=self.worker_name)

    @abstractmethod
    async def execute(self) -> bool:
        """Run one cycle. Returns False if the cycle completed with errors."""
        pass
