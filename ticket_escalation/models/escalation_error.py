"""Defines exceptions for the escalation workflow."""

from ticket_escalation.models.escalation import EscalationState


class EscalationError(Exception):
    """Base exception for escalation errors.

    Raised when a step of the workflow fails; the invocation is over and
    nothing already written is rolled back.
    """

    def __init__(self, message: str, step: EscalationState | None = None) -> None:
        """Initialize the exception with a descriptive message.

        Args:
            message: Detailed error message
            step: Workflow state that was active when the failure happened

        """
        super().__init__(message)
        self.message = message
        self.step = step


class MissingContextError(EscalationError):
    """Source ticket id or project name is not known."""


class FetchError(EscalationError):
    """The source ticket could not be read."""


class CreateError(EscalationError):
    """The new issue could not be created."""


class CommentCopyError(EscalationError):
    """A comment could not be copied to the new issue."""

    def __init__(
        self,
        message: str,
        step: EscalationState | None = None,
        issue_id: int | None = None,
        copied: int = 0,
    ) -> None:
        super().__init__(message, step)
        self.issue_id = issue_id
        self.copied = copied


class UpdateError(EscalationError):
    """The source ticket could not be reclassified."""

    def __init__(
        self,
        message: str,
        step: EscalationState | None = None,
        issue_id: int | None = None,
    ) -> None:
        super().__init__(message, step)
        self.issue_id = issue_id
