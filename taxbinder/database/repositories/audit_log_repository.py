from psycopg.types.json import Jsonb

from taxbinder.database.connection import get_connection
from taxbinder.database.models import AuditEntry


class AuditLogRepository:
    """Append-only writes to the audit_logs table."""

    def append(self, entry: AuditEntry) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO audit_logs
                (organization_id, user_id, action, resource_type, resource_id, details)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    entry.organization_id,
                    entry.user_id,
                    entry.action,
                    entry.resource_type,
                    entry.resource_id,
                    Jsonb(entry.details),
                ),
            )
            conn.commit()
