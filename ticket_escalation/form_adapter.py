"""Work item form integration: lifecycle hooks and the escalate trigger.

The host calls ``on_loaded`` once the form has loaded and ``on_escalate_click``
when the user presses the trigger. The adapter keeps the context captured on
load and drives the trigger through its hidden, enabled and busy states.
"""

from collections.abc import Iterable
from enum import Enum
from typing import Any, Protocol

from rich.panel import Panel

from ticket_escalation.config import logger
from ticket_escalation.display import console
from ticket_escalation.escalation import (
    AREA_PATH_FIELD,
    SUPPORT_AREA_PATH,
    TEAM_PROJECT_FIELD,
    TITLE_FIELD,
    EscalationWorkflow,
)
from ticket_escalation.models import EscalationContext, EscalationError, EscalationResult

FORM_FIELDS = (TEAM_PROJECT_FIELD, TITLE_FIELD, AREA_PATH_FIELD)

ENABLED_LABEL = "Escalate to 2nd"
BUSY_LABEL = "Escalating..."

MISSING_CONTEXT_MESSAGE = (
    "Work item data is missing. Make sure this runs against a valid work item form."
)
FAILURE_MESSAGE = "Failed to create work item. Check logs for details."


class WorkItemFormService(Protocol):
    """Read access to the work item currently open in the form."""

    def get_id(self) -> int | None: ...

    def get_field_values(self, names: Iterable[str]) -> dict[str, Any]: ...


class Notifier(Protocol):
    """Shows user-facing messages."""

    def notify(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class ConsoleNotifier:
    """Notifier that renders messages on the rich console."""

    def notify(self, message: str) -> None:
        console.print(Panel(message, border_style="green"))

    def error(self, message: str) -> None:
        console.print(Panel(message, border_style="red", title="Escalation failed"))


class ButtonState(str, Enum):
    HIDDEN = "hidden"
    ENABLED = "enabled"
    BUSY = "busy"


class TriggerButton:
    """The escalate trigger as the user sees it."""

    def __init__(self) -> None:
        self.state = ButtonState.HIDDEN

    @property
    def visible(self) -> bool:
        return self.state is not ButtonState.HIDDEN

    @property
    def disabled(self) -> bool:
        return self.state is ButtonState.BUSY

    @property
    def label(self) -> str:
        return BUSY_LABEL if self.state is ButtonState.BUSY else ENABLED_LABEL

    def show(self) -> None:
        self.state = ButtonState.ENABLED

    def hide(self) -> None:
        self.state = ButtonState.HIDDEN

    def set_busy(self) -> None:
        self.state = ButtonState.BUSY

    def enable(self) -> None:
        self.state = ButtonState.ENABLED


def is_escalation_allowed(area_path: Any) -> bool:
    """Only tickets filed exactly under the support area path may be escalated."""
    return area_path == SUPPORT_AREA_PATH


class WorkItemFormProvider:
    """Binds the escalation workflow to the work item form lifecycle."""

    def __init__(
        self,
        workflow: EscalationWorkflow,
        notifier: Notifier | None = None,
        button: TriggerButton | None = None,
    ) -> None:
        self.workflow = workflow
        self.notifier = notifier or ConsoleNotifier()
        self.button = button or TriggerButton()
        self.context = EscalationContext()

    def on_loaded(self, form_service: WorkItemFormService) -> None:
        """Capture the form context and decide whether the trigger is shown."""
        try:
            work_item_id = form_service.get_id()
            field_values = form_service.get_field_values(FORM_FIELDS)
        except Exception:
            logger.exception("Error loading work item data")
            self.button.hide()
            return

        self.context = EscalationContext(
            work_item_id=work_item_id,
            project_name=field_values.get(TEAM_PROJECT_FIELD),
        )

        area_path = field_values.get(AREA_PATH_FIELD)
        if is_escalation_allowed(area_path):
            self.button.show()
        else:
            self.button.hide()
        logger.debug(
            "Form loaded for work item #%s (area path %r), trigger %s",
            work_item_id,
            area_path,
            self.button.state.value,
        )

    def on_field_changed(self, args: Any = None) -> None:
        """Field changes do not affect the escalation."""

    def on_escalate_click(self) -> EscalationResult | None:
        """Run the escalation for the loaded work item and report the outcome."""
        self.button.set_busy()

        if not self.context.is_complete:
            self.notifier.error(MISSING_CONTEXT_MESSAGE)
            self.button.enable()
            return None

        try:
            result = self.workflow.run(self.context)
        except EscalationError as e:
            logger.error(
                "Failed to create work item (step=%s): %s",
                e.step.value if e.step else "unknown",
                e.message,
            )
            self.notifier.error(FAILURE_MESSAGE)
            self.button.enable()
            return None
        except Exception:
            logger.exception("Failed to create work item")
            self.notifier.error(FAILURE_MESSAGE)
            self.button.enable()
            return None

        self.notifier.notify(f"Issue #{result.issue_id} successfully created and linked.")
        self.button.hide()
        return result
