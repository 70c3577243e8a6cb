# Overview: Domain error kinds shared by services and routes.

from __future__ import annotations

from dataclasses import dataclass, field


class StockroomError(Exception):
    """Base class for domain errors raised by the service layer."""


class ValidationError(StockroomError, ValueError):
    """400-level input problem (bad quantity, missing actor name, out-of-range pickup)."""

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(StockroomError, LookupError):
    """404-level: referenced record, item, order or product is absent."""


class ConstraintError(StockroomError):
    """409-level business rule conflict (e.g., record still linked to an order product)."""


@dataclass
class PartialFailure:
    """
    N of M media files failed to upload.

    Not raised: the enclosing operation still commits and this value is
    handed back to the caller so the failed files can be retried.
    """
    failed: int
    total: int
    failed_names: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"{self.failed} of {self.total} files failed to upload"
