"""Command line entry points for operators.

    taxbinder worker
    taxbinder reprocess <organization_id> <document_id>
    taxbinder bulk-reprocess <organization_id> <document_id> [<document_id> ...]
"""

import argparse
import sys

from taxbinder.config.settings import Settings
from taxbinder.database.connection import close_pool, init_pool
from taxbinder.database.repositories.audit_log_repository import AuditLogRepository
from taxbinder.database.repositories.documents_repository import DocumentsRepository
from taxbinder.database.repositories.job_repository import JobRepository
from taxbinder.dispatch.dispatcher import Dispatcher
from taxbinder.dispatch.reprocess import ReprocessService
from taxbinder.documents.exceptions import DocumentNotFoundError
from taxbinder.logging.logger import Log
from taxbinder.main import build_worker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taxbinder",
        description="Tax document processing pipeline",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    worker = subparsers.add_parser("worker", help="Run the pipeline worker")
    worker.add_argument(
        "--max-jobs",
        type=int,
        default=None,
        help="Stop after claiming this many jobs",
    )

    reprocess = subparsers.add_parser("reprocess", help="Reprocess one document")
    reprocess.add_argument("organization_id")
    reprocess.add_argument("document_id")
    reprocess.add_argument("--requested-by", default=None, help="User id recorded in the audit log")

    bulk = subparsers.add_parser("bulk-reprocess", help="Reprocess several documents")
    bulk.add_argument("organization_id")
    bulk.add_argument("document_ids", nargs="+")
    bulk.add_argument("--requested-by", default=None, help="User id recorded in the audit log")

    return parser


def build_reprocess_service(settings: Settings) -> ReprocessService:
    return ReprocessService(
        DocumentsRepository(),
        AuditLogRepository(),
        Dispatcher(JobRepository(settings.max_job_attempts)),
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(args.log_level or settings.log_level)
    init_pool(settings)
    try:
        if args.command == "worker":
            build_worker(settings).run(max_jobs=args.max_jobs)
            return 0
        if args.command == "reprocess":
            return _reprocess(settings, args)
        return _bulk_reprocess(settings, args)
    finally:
        close_pool()


def _reprocess(settings: Settings, args: argparse.Namespace) -> int:
    service = build_reprocess_service(settings)
    try:
        result = service.reprocess(
            args.document_id,
            args.organization_id,
            requested_by=args.requested_by,
        )
    except DocumentNotFoundError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if not result.queued:
        print(f"error: document rewound but not scheduled: {result.error}", file=sys.stderr)
        return 1
    print(f"Reprocess scheduled for {args.document_id}")
    return 0


def _bulk_reprocess(settings: Settings, args: argparse.Namespace) -> int:
    service = build_reprocess_service(settings)
    result = service.bulk_reprocess(
        args.document_ids,
        args.organization_id,
        requested_by=args.requested_by,
    )
    for document_id in result.missing_ids:
        print(f"warning: document {document_id} not found", file=sys.stderr)
    if not result.dispatch.queued:
        print(f"error: bulk reprocess not scheduled: {result.dispatch.error}", file=sys.stderr)
        return 1
    print(f"Bulk reprocess scheduled for {len(result.document_ids)} documents")
    return 0


if __name__ == "__main__":
    sys.exit(main())
