"""Background scheduler for the daily paper fetch."""

import asyncio
import logging
from datetime import datetime, timezone

from .cache import next_rollover
from .importer import PaperImporter
from .sources.huggingface import HuggingFaceClient

logger = logging.getLogger(__name__)


class DailyFetchScheduler:
    """Runs the daily fetch once per day at the cache rollover (07:00 IST)."""

    def __init__(
        self,
        importer: PaperImporter,
        huggingface: HuggingFaceClient | None = None,
        limit: int = 5,
        concurrency: int = 3,
        retry_delay: float = 3600.0,
    ):
        """Initialize scheduler.

        Args:
            importer: PaperImporter instance
            huggingface: Daily index client
            limit: Papers imported per run
            concurrency: Chunk size for each run's batch import
            retry_delay: Seconds to wait after a failed run
        """
        self.importer = importer
        self.huggingface = huggingface or HuggingFaceClient()
        self.limit = limit
        self.concurrency = concurrency
        self.retry_delay = retry_delay
        self._task: asyncio.Task | None = None
        self._running = False

    def start(self) -> None:
        """Start the background loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Daily fetch scheduler started (daily at 07:00 UTC+05:30)")

    def stop(self) -> None:
        """Stop the background loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        logger.info("Daily fetch scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def _seconds_until_next_run(self, now: datetime | None = None) -> float:
        """Calculate seconds until the next rollover."""
        now = now or datetime.now(timezone.utc)
        return (next_rollover(now) - now).total_seconds()

    async def run_once(self) -> None:
        """Run one daily fetch."""
        result = await self.importer.fetch_daily(
            self.huggingface, limit=self.limit, concurrency=self.concurrency
        )
        if result is None:
            logger.info("Scheduled fetch skipped: today already fetched")
        else:
            logger.info(
                f"Scheduled fetch completed: warmed={len(result.warmed)} "
                f"failed={len(result.failed)} skipped={len(result.skipped)}"
            )

    async def _run_loop(self) -> None:
        while self._running:
            try:
                wait_seconds = self._seconds_until_next_run()
                logger.info(f"Daily fetch scheduler: next run in {wait_seconds / 3600:.1f} hours")
                await asyncio.sleep(wait_seconds)

                if self._running:
                    await self.run_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Daily fetch scheduler error: {e}")
                await asyncio.sleep(self.retry_delay)
