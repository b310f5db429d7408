from dataclasses import dataclass
from enum import Enum


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """What one step did during a run; a failed step carries the reason."""

    name: str
    status: StepStatus
    reason: str = ""

    @classmethod
    def succeeded(cls, name: str, reason: str = "") -> "StepOutcome":
        return cls(name=name, status=StepStatus.SUCCEEDED, reason=reason)

    @classmethod
    def skipped(cls, name: str, reason: str) -> "StepOutcome":
        return cls(name=name, status=StepStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, name: str, reason: str) -> "StepOutcome":
        return cls(name=name, status=StepStatus.FAILED, reason=reason)


class RunOutcome(str, Enum):
    COMPLETED = "completed"  # document reached pending_review
    ERROR = "error"  # document unreadable, moved to error
    STALE = "stale"  # document not runnable when the run started
    NOT_FOUND = "not_found"  # no such document in the organization
    SUPERSEDED = "superseded"  # a later run took ownership before results were saved
