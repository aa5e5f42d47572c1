"""Host system integration: subprocess helpers and dependency preflight."""

from shelby_wizard.system.commands import run, which
from shelby_wizard.system.preflight import Preflight, ToolStatus

__all__ = ["Preflight", "ToolStatus", "run", "which"]
