from __future__ import annotations

from dataclasses import dataclass

from .errors import ValidationError


@dataclass(frozen=True)
class Actor:
    """
    Who is performing an operation.

    Passed explicitly into every lifecycle and ledger call; the service layer
    never reads the current user from request or session state.
    """
    id: int | None
    name: str
    role: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or "Unknown"


def require_actor(actor: Actor | None) -> Actor:
    if actor is None:
        raise ValidationError("actor is required", field="actor")
    return actor
