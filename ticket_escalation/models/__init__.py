"""Models package for data structures used in the application."""

from ticket_escalation.models.escalation import (
    EscalationContext,
    EscalationResult,
    EscalationState,
)
from ticket_escalation.models.escalation_error import (
    CommentCopyError,
    CreateError,
    EscalationError,
    FetchError,
    MissingContextError,
    UpdateError,
)
from ticket_escalation.models.work_item import (
    Comment,
    PatchOperation,
    WorkItem,
    WorkItemRelation,
)

__all__ = [
    "Comment",
    "CommentCopyError",
    "CreateError",
    "EscalationContext",
    "EscalationError",
    "EscalationResult",
    "EscalationState",
    "FetchError",
    "MissingContextError",
    "PatchOperation",
    "UpdateError",
    "WorkItem",
    "WorkItemRelation",
]
