"""Exceptions raised by Shelby Wizard actions.

Every action either completes or raises one of these. The CLI catches them
at the action boundary, so a failed action never ends the menu session
(except :class:`MissingDependency` while bootstrapping).
"""

from __future__ import annotations


class ShelbyWizardError(Exception):
    """Base class for all wizard errors."""


class MissingDependency(ShelbyWizardError):
    """A required external tool is missing and could not be installed."""

    def __init__(self, tool: str, hint: str = "") -> None:
        self.tool = tool
        self.hint = hint
        message = f"Required tool '{tool}' is not available."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class AccountNotFound(ShelbyWizardError):
    """The requested account has no valid record on disk."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Wallet '{name}' not found. Create a new wallet first.")


class UserCancelled(ShelbyWizardError):
    """A confirmation prompt was declined or answered incorrectly."""

    def __init__(self, message: str = "Cancelled.") -> None:
        super().__init__(message)


class InvalidInput(ShelbyWizardError):
    """User input failed validation (bad path, bad account name...)."""


class ExternalCommandFailure(ShelbyWizardError):
    """An external command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, detail: str = "") -> None:
        self.command = list(command)
        self.returncode = returncode
        self.detail = detail
        message = f"Command '{' '.join(self.command)}' failed with exit code {returncode}."
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class KeyGenerationError(ExternalCommandFailure):
    """The key generator ran but did not produce a usable key pair."""
