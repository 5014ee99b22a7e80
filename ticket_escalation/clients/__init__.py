"""API clients package for the ticket escalation tool."""

from ticket_escalation.clients.work_item_client import WorkItemStore, WorkItemTrackingClient

__all__ = ["WorkItemStore", "WorkItemTrackingClient"]
