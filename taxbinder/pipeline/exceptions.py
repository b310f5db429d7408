class PipelineError(Exception):
    """Base exception for pipeline run errors."""


class DocumentUnreadableError(PipelineError):
    """The document's payload cannot be fetched or decoded; the run cannot produce output."""


class BulkRunError(PipelineError):
    """Raised after a bulk run when at least one document's run raised."""

    def __init__(self, failures: dict[str, str]) -> None:
        self.failures = failures
        summary = ", ".join(f"{doc_id}: {error}" for doc_id, error in failures.items())
        super().__init__(f"{len(failures)} document run(s) failed: {summary}")
