from dataclasses import dataclass

from taxbinder.database.connection import get_connection
from taxbinder.database.repositories.job_repository import JobRepository
from taxbinder.dispatch.triggers import Trigger
from taxbinder.logging.logger import Log


@dataclass(frozen=True)
class DispatchResult:
    queued: bool
    job_id: int | None = None
    duplicate: bool = False
    error: str = ""


class Dispatcher:
    """Records triggers in the pipeline_jobs outbox for the worker to run.

    Scheduling failures are logged and returned, never raised: the document
    is already stored in a reprocessable state.
    """

    def __init__(self, job_repo: JobRepository) -> None:
        self._job_repo = job_repo

    def dispatch(self, trigger: Trigger) -> DispatchResult:
        try:
            with get_connection() as conn:
                job_id = self._job_repo.enqueue(
                    conn,
                    kind=trigger.kind,
                    organization_id=trigger.organization_id,
                    payload=trigger.payload(),
                    document_id=trigger.document_id,
                )
                conn.commit()
        except Exception as exc:
            Log.error(
                f"Failed to schedule {trigger.kind}: {exc}",
                organization_id=trigger.organization_id,
                document_id=trigger.document_id,
            )
            return DispatchResult(queued=False, error=str(exc))

        if job_id is None:
            Log.info(
                f"{trigger.kind} already pending, not scheduled again",
                document_id=trigger.document_id,
            )
            return DispatchResult(queued=True, duplicate=True)

        Log.info(f"Scheduled {trigger.kind} as job {job_id}", document_id=trigger.document_id)
        return DispatchResult(queued=True, job_id=job_id)
