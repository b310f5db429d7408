from taxbinder.config.settings import Settings
from taxbinder.database.models import JobRecord
from taxbinder.database.repositories.job_repository import JobRepository
from taxbinder.dispatch.triggers import BulkReprocess, trigger_from_job
from taxbinder.logging.logger import Log
from taxbinder.pipeline.context import RunRequest
from taxbinder.pipeline.exceptions import BulkRunError
from taxbinder.pipeline.orchestrator import Orchestrator


class JobRunner:
    """Run one job, catch exceptions, and apply the bounded whole-run retry."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._orchestrator = orchestrator
        self._job_repo = job_repo
        self._settings = settings

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running job {job.id} ({job.kind}, attempt {job.attempts + 1})")
        try:
            trigger = trigger_from_job(job)
        except ValueError as exc:
            Log.error(f"Job {job.id} cannot be run: {exc}")
            self._job_repo.mark_failed(job.id, str(exc))
            return

        try:
            if isinstance(trigger, BulkReprocess):
                self._run_bulk(job, trigger)
            else:
                self._orchestrator.run(
                    RunRequest(
                        document_id=trigger.document_id,
                        organization_id=trigger.organization_id,
                        run_id=f"job-{job.id}",
                        cause=job.kind,
                    )
                )
            self._job_repo.mark_done(job.id)
            Log.info(f"Job {job.id} completed successfully")
        except Exception as exc:
            self._handle_failure(job, exc)

    def _run_bulk(self, job: JobRecord, trigger: BulkReprocess) -> None:
        report = self._orchestrator.run_bulk(
            [
                RunRequest(
                    document_id=document_id,
                    organization_id=trigger.organization_id,
                    run_id=f"job-{job.id}:{document_id}",
                    cause=job.kind,
                )
                for document_id in trigger.document_ids
            ]
        )
        Log.info(
            f"Bulk job {job.id}: {len(report.reports)} finished, {len(report.failures)} raised"
        )
        if report.failures:
            raise BulkRunError(report.failures)

    def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending."""
        Log.error(f"Job {job.id} failed: {exc}")
        if job.attempts + 1 >= self._settings.max_job_attempts:
            self._job_repo.mark_failed(job.id, str(exc))
            Log.error(
                f"Job {job.id} permanently failed after {job.attempts + 1} attempts; "
                "documents left in processing can be reprocessed",
                document_id=job.document_id,
            )
        else:
            self._job_repo.increment_attempts(job.id, str(exc))
            Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")
