"""Escalation run models: the invocation context, its states and its result."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class EscalationState(str, Enum):
    """Progress of a single escalation invocation."""

    IDLE = "idle"
    VALIDATING = "validating"
    FETCHING = "fetching"
    CREATING = "creating"
    COPYING_COMMENTS = "copying_comments"
    RECLASSIFYING = "reclassifying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class EscalationContext:
    """Source ticket id and project name captured from the work item form."""

    work_item_id: int | None = None
    project_name: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.work_item_id) and bool(self.project_name)


class EscalationResult(BaseModel):
    """Outcome of a successful escalation."""

    issue_id: int
    source_id: int
    issue_url: str = ""
    comments_copied: int = 0
    comment_failures: list[str] = Field(default_factory=list)
    state: EscalationState = EscalationState.SUCCEEDED

    def add_comment_failure(self, failure: str) -> None:
        """Record a comment that could not be copied."""
        self.comment_failures.append(failure)
