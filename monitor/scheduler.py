"""Background scheduler for periodic baseline and capacity recomputation."""
import logging
import threading
import schedule
import time

logger = logging.getLogger("metricwatch.scheduler")


class AnalysisScheduler:
    """Recomputes configured baselines and capacity analyses on an interval.

    Rule evaluation is never scheduled here; it happens on ingestion.
    """

    def __init__(self, service, organization_id, config=None, scheduler=None):
        cfg = (config or {}).get("scheduler", {})
        self.service = service
        self.organization_id = organization_id
        self.interval = cfg.get("interval_seconds", 3600)
        self.baselines = cfg.get("baselines") or []
        self.capacity = cfg.get("capacity") or []
        self.scheduler = scheduler or schedule.Scheduler()
        self._thread = None
        self._running = False
        self._consecutive_failures = 0

    def start(self):
        if self._running:
            return
        self._running = True
        self.scheduler.every(self.interval).seconds.do(self.run_once)

        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
        logger.info(f"Scheduler started (every {self.interval}s, "
                    f"{len(self.baselines)} baseline(s), {len(self.capacity)} capacity job(s))")

    def stop(self):
        self._running = False
        self.scheduler.clear()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Scheduler stopped")

    def _run_loop(self):
        self.run_once()
        while self._running:
            self.scheduler.run_pending()
            time.sleep(1)

    def run_once(self):
        """Run every configured job. Returns (succeeded, failed)."""
        ok = failed = 0
        for job in self.baselines:
            try:
                self.service.calculate_performance_baseline(
                    self.organization_id, job["metric_name"], job["source"], job.get("time_frame", "daily"),
                )
                ok += 1
            except Exception as e:
                failed += 1
                logger.warning(f"Baseline job {job} failed: {e}")

        for job in self.capacity:
            try:
                self.service.perform_capacity_analysis(
                    self.organization_id, job["resource_type"], job["resource_id"],
                )
                ok += 1
            except Exception as e:
                failed += 1
                logger.warning(f"Capacity job {job} failed: {e}")

        if failed and not ok:
            self._consecutive_failures += 1
            logger.error(f"All scheduled jobs failed ({self._consecutive_failures} consecutive)")
        else:
            self._consecutive_failures = 0
        return ok, failed
