import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from taxbinder.config.settings import Settings
from taxbinder.database.connection import build_conninfo, close_pool, get_connection, init_pool
from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.documents.models import Document, DocumentStatus

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "taxbinder_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        with psycopg.connect(build_conninfo(test_settings), connect_timeout=3) as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except psycopg.Error as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    init_pool(test_settings)
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def organization_id(integration_pool: None) -> Generator[str, None, None]:
    """A fresh organization; every row it owns is removed afterwards."""
    org = str(uuid.uuid4())
    yield org
    with get_connection() as conn:
        conn.execute("DELETE FROM pipeline_jobs WHERE organization_id = %s", (org,))
        conn.execute("DELETE FROM audit_logs WHERE organization_id = %s", (org,))
        conn.execute("DELETE FROM documents WHERE organization_id = %s", (org,))
        conn.commit()


@pytest.fixture
def client_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def seed_document(
    db_conn: psycopg.Connection[Any],
    organization_id: str,
    client_id: str,
) -> Document:
    with db_conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO documents
            (organization_id, client_id, file_location, file_name, file_size, mime_type, status)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                organization_id,
                client_id,
                f"{organization_id}/{client_id}/1700000000000-w2.pdf",
                "w2.pdf",
                1024,
                "application/pdf",
                DocumentStatus.PENDING_OCR.value,
            ),
        )
        row = cur.fetchone()
        assert row is not None
    db_conn.commit()
    return DocumentsRepository().find_by_id(str(row[0]), organization_id)


@pytest.fixture
def sample_pdf_on_disk(
    seed_document: Document,
    files_root: Path,
    sample_pdf_bytes: bytes,
) -> tuple[Document, Path]:
    path = files_root.joinpath(*seed_document.file_location.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(sample_pdf_bytes)
    return (seed_document, files_root)
