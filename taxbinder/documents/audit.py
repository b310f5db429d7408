from taxbinder.database.models import AuditEntry
from taxbinder.database.repositories.audit_log_repository import AuditLogRepository
from taxbinder.logging.logger import Log


def record_audit_entry(audit_repo: AuditLogRepository, entry: AuditEntry) -> bool:
    """Append an audit entry; a failed write is logged and reported as False."""
    try:
        audit_repo.append(entry)
    except Exception as exc:
        Log.warning(
            f"Failed to write '{entry.action}' audit entry: {exc}",
            resource_id=entry.resource_id,
            organization_id=entry.organization_id,
        )
        return False
    return True
