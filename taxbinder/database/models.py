from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class JobRecord:
    """Represents a row from the pipeline_jobs table."""

    id: int
    kind: str
    organization_id: str
    status: str
    attempts: int
    document_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AuditEntry:
    """One append-only row of the audit_logs table."""

    organization_id: str
    action: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = field(default_factory=dict)
    user_id: str | None = None
