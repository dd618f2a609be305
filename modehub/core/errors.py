"""
Error kinds raised by the module lifecycle engine.

Everything the engine raises derives from ``ModeError`` so the use-case
layer can catch one type at the boundary and turn it into a result
``error`` string.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modehub.core.models.action import Receipt


class ModeError(Exception):
    """Base class for all module manager errors."""


class ConfigurationError(ModeError):
    """A module lacks something it needs (repository URI, product)."""


class ResolutionError(ModeError):
    """A query or a set of module names could not be resolved."""


class ManifestError(ModeError):
    """A manifest fragment failed to parse or validate."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"{message}\n    in {self.path}")


class VcsError(ModeError):
    """The version-control executor reported a failure."""

    def __init__(self, receipt: Receipt):
        self.receipt = receipt
        super().__init__(receipt.error or f"git {receipt.action_id} failed")


class ConflictError(ModeError):
    """The active alias path is occupied by something that is not a link."""

    def __init__(self, path: Path | str, hint: str = ""):
        self.path = Path(path)
        self.hint = hint
        message = f"target '{self.path}' exists but is not a link"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)
