from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from taxbinder.database.connection import get_connection
from taxbinder.documents.exceptions import DocumentNotFoundError, InvalidTransitionError
from taxbinder.documents.models import Document, DocumentStatus, NewDocument, ProcessingResults
from taxbinder.documents.state_machine import RUNNABLE_STATUSES

_DOCUMENT_COLUMNS = """
    id, organization_id, client_id, file_location, file_name, file_size, mime_type,
    status, category, subcategory, tax_year, ocr_text, extracted_data,
    uploaded_by, verified_by, processing_run_id, created_at, updated_at
"""


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _row_to_document(row: dict[str, Any]) -> Document:
    return Document(
        id=str(row["id"]),
        organization_id=str(row["organization_id"]),
        client_id=str(row["client_id"]),
        file_location=row["file_location"],
        file_name=row["file_name"],
        file_size=row.get("file_size") or 0,
        mime_type=row["mime_type"],
        status=DocumentStatus(row["status"]),
        category=row.get("category"),
        subcategory=row.get("subcategory"),
        tax_year=row.get("tax_year"),
        ocr_text=row.get("ocr_text"),
        extracted_data=row.get("extracted_data"),
        uploaded_by=_optional_str(row.get("uploaded_by")),
        verified_by=_optional_str(row.get("verified_by")),
        processing_run_id=row.get("processing_run_id"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class DocumentsRepository:
    """Database operations for the documents table.

    Every statement is scoped by organization id; a document id that exists
    only in another organization behaves exactly like a missing one.
    """

    def find_by_id(self, document_id: str, organization_id: str) -> Document:
        """Find a document by ID within an organization.

        Raises:
            DocumentNotFoundError: if the organization has no such document.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE id = %s AND organization_id = %s
                    """,
                    (document_id, organization_id),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _row_to_document(row)

    def create(self, document: NewDocument) -> Document:
        """Insert an uploaded document directly in pending_ocr."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                    (organization_id, client_id, file_location, file_name, file_size,
                     mime_type, category, subcategory, tax_year, uploaded_by, status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (
                        document.organization_id,
                        document.client_id,
                        document.file_location,
                        document.file_name,
                        document.file_size,
                        document.mime_type,
                        document.category,
                        document.subcategory,
                        document.tax_year,
                        document.uploaded_by,
                        DocumentStatus.PENDING_OCR.value,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        assert row is not None
        return _row_to_document(row)

    def mark_processing(
        self,
        document_id: str,
        organization_id: str,
        run_id: str,
    ) -> Document | None:
        """Claim the document for a run and stamp the run id.

        Returns the updated document, or None when the document is not in a
        runnable status (a stale or duplicate trigger).

        Raises:
            DocumentNotFoundError: if the organization has no such document.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET status = %s, processing_run_id = %s, updated_at = NOW()
                    WHERE id = %s AND organization_id = %s AND status = ANY(%s)
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (
                        DocumentStatus.PROCESSING.value,
                        run_id,
                        document_id,
                        organization_id,
                        sorted(status.value for status in RUNNABLE_STATUSES),
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            # Distinguishes "wrong status" from "not found"; raises for the latter.
            self.find_by_id(document_id, organization_id)
            return None
        return _row_to_document(row)

    def save_results(
        self,
        document_id: str,
        organization_id: str,
        run_id: str,
        results: ProcessingResults,
    ) -> bool:
        """Merge a run's outputs into the document and move it to pending_review.

        One statement, so readers never observe a half-applied merge. Null
        contributions keep the stored value; extracted_data is merged key by key.

        Returns:
            False if the run no longer owns the document (superseded by a later run).
        """
        extracted = Jsonb(results.extracted_data) if results.extracted_data else None
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = %(status)s,
                        ocr_text = COALESCE(%(ocr_text)s::text, ocr_text),
                        category = COALESCE(%(category)s::text, category),
                        subcategory = COALESCE(%(subcategory)s::text, subcategory),
                        tax_year = COALESCE(%(tax_year)s::integer, tax_year),
                        extracted_data = CASE
                            WHEN %(extracted_data)s::jsonb IS NULL THEN extracted_data
                            ELSE COALESCE(extracted_data, '{}'::jsonb) || %(extracted_data)s::jsonb
                        END,
                        processing_run_id = NULL,
                        updated_at = NOW()
                    WHERE id = %(id)s
                      AND organization_id = %(organization_id)s
                      AND status = %(processing)s
                      AND processing_run_id = %(run_id)s
                    """,
                    {
                        "status": DocumentStatus.PENDING_REVIEW.value,
                        "ocr_text": results.ocr_text,
                        "category": results.category,
                        "subcategory": results.subcategory,
                        "tax_year": results.tax_year,
                        "extracted_data": extracted,
                        "id": document_id,
                        "organization_id": organization_id,
                        "processing": DocumentStatus.PROCESSING.value,
                        "run_id": run_id,
                    },
                )
                updated = cur.rowcount
            conn.commit()
        return updated > 0

    def mark_error(self, document_id: str, organization_id: str, run_id: str) -> bool:
        """Move a document owned by ``run_id`` from processing to error."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = %s, processing_run_id = NULL, updated_at = NOW()
                    WHERE id = %s AND organization_id = %s
                      AND status = %s AND processing_run_id = %s
                    """,
                    (
                        DocumentStatus.ERROR.value,
                        document_id,
                        organization_id,
                        DocumentStatus.PROCESSING.value,
                        run_id,
                    ),
                )
                updated = cur.rowcount
            conn.commit()
        return updated > 0

    def rewind_for_reprocess(self, document_ids: list[str], organization_id: str) -> list[str]:
        """Move documents back to pending_ocr from any status.

        Stored outputs are kept; the next run overwrites only what it produces.

        Returns:
            The ids that belong to the organization and were rewound.
        """
        if not document_ids:
            return []
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = %s, processing_run_id = NULL, updated_at = NOW()
                    WHERE id = ANY(%s::uuid[]) AND organization_id = %s
                    RETURNING id
                    """,
                    (DocumentStatus.PENDING_OCR.value, document_ids, organization_id),
                )
                rows = cur.fetchall()
            conn.commit()
        return [str(row[0]) for row in rows]

    def record_review(
        self,
        document_id: str,
        organization_id: str,
        *,
        status: DocumentStatus,
        verifier_id: str,
        category: str | None = None,
        subcategory: str | None = None,
    ) -> Document:
        """Apply a human review decision to a document in pending_review.

        Raises:
            DocumentNotFoundError: if the organization has no such document.
            InvalidTransitionError: if the document is not awaiting review.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET status = %s,
                        verified_by = %s,
                        category = COALESCE(%s::text, category),
                        subcategory = COALESCE(%s::text, subcategory),
                        updated_at = NOW()
                    WHERE id = %s AND organization_id = %s AND status = %s
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (
                        status.value,
                        verifier_id,
                        category,
                        subcategory,
                        document_id,
                        organization_id,
                        DocumentStatus.PENDING_REVIEW.value,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            current = self.find_by_id(document_id, organization_id)
            raise InvalidTransitionError(
                f"Document {document_id} is '{current.status.value}', not awaiting review"
            )
        return _row_to_document(row)

    def delete(self, document_id: str, organization_id: str) -> Document:
        """Delete a document row and return what was deleted.

        Raises:
            DocumentNotFoundError: if the organization has no such document.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    DELETE FROM documents
                    WHERE id = %s AND organization_id = %s
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (document_id, organization_id),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _row_to_document(row)
