import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from taxbinder.config.settings import Settings
from taxbinder.database.connection import get_connection
from taxbinder.database.models import JobRecord
from taxbinder.database.repositories.job_repository import JobRepository
from taxbinder.logging.logger import Log
from taxbinder.worker.job_runner import JobRunner


class Worker:
    """Poll loop: sleep -> claim -> hand off to a pool of job threads."""

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._concurrency = max(1, settings.worker_concurrency)

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after claiming that many jobs (for testing).
        In-flight jobs are always allowed to finish before returning.
        """
        Log.info(f"Worker started with {self._concurrency} threads, polling for jobs")
        jobs_claimed = 0
        in_flight: set[Future[None]] = set()
        executor = ThreadPoolExecutor(max_workers=self._concurrency, thread_name_prefix="job")
        try:
            while True:
                if max_jobs is not None and jobs_claimed >= max_jobs:
                    break
                in_flight = {future for future in in_flight if not future.done()}
                if len(in_flight) >= self._concurrency:
                    wait(in_flight, return_when=FIRST_COMPLETED)
                    continue
                job = self._try_claim_job()
                if job:
                    future = executor.submit(self._job_runner.run, job)
                    future.add_done_callback(self._log_crash)
                    in_flight.add(future)
                    jobs_claimed += 1
                else:
                    Log.debug("No jobs available, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        finally:
            executor.shutdown(wait=True)

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next pending job. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None

    @staticmethod
    def _log_crash(future: Future[None]) -> None:
        exc = future.exception()
        if exc is not None:
            Log.error(f"Job thread crashed: {exc}")
