import logging
from apscheduler.schedulers.background import BackgroundScheduler

from schoolcache.core.store import TTLStore

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Purges expired entries on a fixed interval, independent of reads."""

    def __init__(self, store: TTLStore, interval_seconds: int = 60, enabled: bool = True):
        self.store = store
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self.scheduler = BackgroundScheduler()

    def run_once(self) -> int:
        try:
            removed = self.store.sweep()
        except Exception as e:
            logger.error(f"Error sweeping expired cache entries: {e}")
            return 0
        if removed:
            logger.info(f"Cache sweep removed {removed} expired entries")
        return removed

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        if not self.enabled:
            logger.info("Cache sweeper disabled")
            return

        if not self.scheduler.running:
            self.scheduler.add_job(
                self.run_once,
                'interval',
                seconds=self.interval_seconds,
                id='cache_sweep',
                name='Purge Expired Cache Entries',
                replace_existing=True
            )
            self.scheduler.start()
            logger.info(f"Cache sweeper started (every {self.interval_seconds}s)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Cache sweeper stopped")
