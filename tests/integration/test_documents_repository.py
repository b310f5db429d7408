import uuid

import pytest

from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.documents.exceptions import DocumentNotFoundError, InvalidTransitionError
from taxbinder.documents.models import Document, DocumentStatus, NewDocument, ProcessingResults

from tests.integration.db_helpers import fetch_document_row


@pytest.mark.integration
class TestCreate:
    def test_create_inserts_pending_ocr(self, organization_id: str, client_id: str) -> None:
        repo = DocumentsRepository()

        document = repo.create(
            NewDocument(
                organization_id=organization_id,
                client_id=client_id,
                file_location=f"{organization_id}/{client_id}/1-1099.pdf",
                file_name="1099.pdf",
                file_size=512,
                mime_type="application/pdf",
                tax_year=2024,
            )
        )

        assert document.status == DocumentStatus.PENDING_OCR
        assert repo.find_by_id(document.id, organization_id).file_name == "1099.pdf"


@pytest.mark.integration
class TestOrganizationScoping:
    def test_other_organization_cannot_see_document(self, seed_document: Document) -> None:
        with pytest.raises(DocumentNotFoundError):
            DocumentsRepository().find_by_id(seed_document.id, str(uuid.uuid4()))

    def test_other_organization_cannot_claim_document(self, seed_document: Document) -> None:
        with pytest.raises(DocumentNotFoundError):
            DocumentsRepository().mark_processing(seed_document.id, str(uuid.uuid4()), "job-1")
        assert fetch_document_row(seed_document.id)["status"] == "pending_ocr"


@pytest.mark.integration
class TestRunOwnership:
    def test_save_results_requires_matching_run_id(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        org = seed_document.organization_id
        repo.mark_processing(seed_document.id, org, "job-1")
        repo.mark_processing(seed_document.id, org, "job-2")

        assert repo.save_results(seed_document.id, org, "job-1", ProcessingResults(ocr_text="old")) is False
        assert repo.save_results(seed_document.id, org, "job-2", ProcessingResults(ocr_text="new")) is True

        row = fetch_document_row(seed_document.id)
        assert row["status"] == "pending_review"
        assert row["ocr_text"] == "new"
        assert row["processing_run_id"] is None

    def test_reviewed_document_is_not_reclaimed(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        org = seed_document.organization_id
        repo.mark_processing(seed_document.id, org, "job-1")
        repo.save_results(seed_document.id, org, "job-1", ProcessingResults(ocr_text="text"))

        assert repo.mark_processing(seed_document.id, org, "job-1") is None
        assert fetch_document_row(seed_document.id)["status"] == "pending_review"

    def test_mark_error_only_for_owning_run(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        org = seed_document.organization_id
        repo.mark_processing(seed_document.id, org, "job-2")

        assert repo.mark_error(seed_document.id, org, "job-1") is False
        assert repo.mark_error(seed_document.id, org, "job-2") is True
        assert fetch_document_row(seed_document.id)["status"] == "error"


@pytest.mark.integration
class TestAdditiveMerge:
    def test_absent_outputs_keep_stored_values(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        org = seed_document.organization_id
        repo.mark_processing(seed_document.id, org, "job-1")
        repo.save_results(
            seed_document.id,
            org,
            "job-1",
            ProcessingResults(
                ocr_text="W-2 text",
                category="income",
                subcategory="W-2",
                extracted_data={"classification": {"category": "income"}, "processed_at": "t1"},
            ),
        )
        repo.rewind_for_reprocess([seed_document.id], org)
        repo.mark_processing(seed_document.id, org, "job-2")

        repo.save_results(
            seed_document.id,
            org,
            "job-2",
            ProcessingResults(extracted_data={"processed_at": "t2"}),
        )

        row = fetch_document_row(seed_document.id)
        assert row["ocr_text"] == "W-2 text"
        assert row["category"] == "income"
        assert row["extracted_data"] == {"classification": {"category": "income"}, "processed_at": "t2"}


@pytest.mark.integration
class TestReview:
    def test_record_review_requires_pending_review(self, seed_document: Document) -> None:
        with pytest.raises(InvalidTransitionError):
            DocumentsRepository().record_review(
                seed_document.id,
                seed_document.organization_id,
                status=DocumentStatus.VERIFIED,
                verifier_id=str(uuid.uuid4()),
            )

    def test_rewind_from_verified(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        org = seed_document.organization_id
        repo.mark_processing(seed_document.id, org, "job-1")
        repo.save_results(seed_document.id, org, "job-1", ProcessingResults(ocr_text="t"))
        repo.record_review(seed_document.id, org, status=DocumentStatus.VERIFIED, verifier_id=str(uuid.uuid4()))

        assert repo.rewind_for_reprocess([seed_document.id, str(uuid.uuid4())], org) == [seed_document.id]
        assert fetch_document_row(seed_document.id)["status"] == "pending_ocr"
