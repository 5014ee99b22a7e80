"""Escalation of Azure DevOps support tickets into second-line issues."""

__version__ = "0.1.0"
