"""Domain error types.

Everything the core rejects is raised before any state is mutated.
Consistency fallbacks (missing anchor, missing tracking start, empty
food log) are resolved in place and never raise.
"""

from __future__ import annotations


class FluxcalError(Exception):
    """Base class for errors surfaced to callers."""


class InvalidInputError(FluxcalError):
    """Malformed or out-of-range input (bad calories, bad goal, etc.)."""


class ProfileIncompleteError(FluxcalError):
    """BMR/TDEE requested before all biometric fields are set."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"profile incomplete: missing {', '.join(missing)}")
        self.missing = missing


class NotFoundError(FluxcalError):
    """A user or food entry does not exist or belongs to another user."""

    def __init__(self, kind: str, ident: object) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident
