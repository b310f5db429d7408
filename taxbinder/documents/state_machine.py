"""Document lifecycle.

pending_upload -> pending_ocr -> processing -> pending_review -> verified | rejected
                                     |
                                     +-> error

Reprocessing is the only backward move: any status may rewind to pending_ocr.
"""

from taxbinder.documents.exceptions import InvalidTransitionError
from taxbinder.documents.models import DocumentStatus

_FORWARD_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PENDING_UPLOAD: frozenset({DocumentStatus.PENDING_OCR}),
    DocumentStatus.PENDING_OCR: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset(
        {
            DocumentStatus.PROCESSING,
            DocumentStatus.PENDING_REVIEW,
            DocumentStatus.ERROR,
        }
    ),
    DocumentStatus.PENDING_REVIEW: frozenset(
        {DocumentStatus.VERIFIED, DocumentStatus.REJECTED}
    ),
    DocumentStatus.VERIFIED: frozenset(),
    DocumentStatus.REJECTED: frozenset(),
    DocumentStatus.ERROR: frozenset(),
}

# Statuses from which a pipeline run may (re)claim the document.
RUNNABLE_STATUSES: frozenset[DocumentStatus] = frozenset(
    {DocumentStatus.PENDING_OCR, DocumentStatus.PROCESSING}
)

def can_transition(
    current: DocumentStatus,
    target: DocumentStatus,
    *,
    reprocess: bool = False,
) -> bool:
    """Return True if moving from ``current`` to ``target`` is allowed."""
    if reprocess:
        return target == DocumentStatus.PENDING_OCR
    return target in _FORWARD_TRANSITIONS[current]


def ensure_transition(
    current: DocumentStatus,
    target: DocumentStatus,
    *,
    reprocess: bool = False,
) -> None:
    """Raise InvalidTransitionError unless the transition is allowed."""
    if not can_transition(current, target, reprocess=reprocess):
        raise InvalidTransitionError(
            f"Cannot move document from '{current.value}' to '{target.value}'"
        )
