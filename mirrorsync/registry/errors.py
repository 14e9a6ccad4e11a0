"""Errors specific to the repository registry."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry errors."""


class RegistryUnavailableError(RegistryError):
    """Raised when the registry database cannot serve an operation."""

    def __init__(self, operation: str) -> None:
        """Initialise with the failed store operation."""
        self.operation = operation
        super().__init__(f"Registry unavailable during {operation}")


class CounterConflictError(RegistryError):
    """Raised when the trigger counter keeps losing concurrent updates."""

    def __init__(self, attempts: int) -> None:
        """Initialise with the number of compare-and-set attempts made."""
        self.attempts = attempts
        super().__init__(
            f"Trigger counter update lost {attempts} consecutive races"
        )
