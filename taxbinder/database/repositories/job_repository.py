from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from taxbinder.database.connection import get_connection
from taxbinder.database.models import JobRecord

_JOB_COLUMNS = """
    id, kind, organization_id, document_id, payload, status, attempts,
    error_message, locked_at, created_at, updated_at
"""


def _row_to_job(row: dict[str, Any]) -> JobRecord:
    document_id = row.get("document_id")
    return JobRecord(
        id=row["id"],
        kind=row["kind"],
        organization_id=str(row["organization_id"]),
        document_id=str(document_id) if document_id is not None else None,
        payload=row.get("payload") or {},
        status=row["status"],
        attempts=row["attempts"],
        error_message=row.get("error_message"),
        locked_at=row.get("locked_at"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class JobRepository:
    """Database operations for the pipeline_jobs table (the trigger outbox)."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def enqueue(
        self,
        conn: psycopg.Connection[Any],
        *,
        kind: str,
        organization_id: str,
        payload: dict[str, Any],
        document_id: str | None = None,
    ) -> int | None:
        """Insert a pending job. Caller commits.

        A document-scoped trigger that already has a pending job of the same
        kind is not inserted twice; None is returned in that case.
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO pipeline_jobs
                (kind, organization_id, document_id, payload, status, attempts)
                SELECT %(kind)s, %(organization_id)s, %(document_id)s, %(payload)s, 'pending', 0
                WHERE %(document_id)s::uuid IS NULL OR NOT EXISTS (
                    SELECT 1 FROM pipeline_jobs
                    WHERE kind = %(kind)s
                      AND organization_id = %(organization_id)s
                      AND document_id = %(document_id)s::uuid
                      AND status = 'pending'
                )
                RETURNING id
                """,
                {
                    "kind": kind,
                    "organization_id": organization_id,
                    "document_id": document_id,
                    "payload": Jsonb(payload),
                },
            )
            row = cur.fetchone()
        return int(row[0]) if row is not None else None

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next pending job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM pipeline_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE pipeline_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        job = _row_to_job(row)
        job.status = "processing"
        return job

    def mark_done(self, job_id: int) -> None:
        """Mark a job as done."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_jobs
                SET status = 'done', error_message = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_jobs
                SET status = 'failed', attempts = attempts + 1,
                    error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def increment_attempts(self, job_id: int, error: str) -> None:
        """Increment attempt count and return job to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE pipeline_jobs
                SET attempts = attempts + 1, status = 'pending', error_message = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM pipeline_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _row_to_job(row)
