"""Exception types raised by the structuring core.

Soft misses (no section number, no sentence, no email match, no catalog
match) never raise; they fall back and are logged by the module that
detects them.
"""
from __future__ import annotations


class StructuringError(RuntimeError):
    """Base class for fatal errors while structuring one document."""


class TaxonomyViolationError(StructuringError):
    """Raised when a label outside the marker taxonomy reaches marker dispatch."""

    def __init__(self, label: str) -> None:
        super().__init__(f"Unsupported marker type: {label}")
        self.label = label


class MissingResourceError(StructuringError):
    """Raised at setup when a required collaborator or input is absent."""
