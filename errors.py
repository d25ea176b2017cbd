"""Error taxonomy shared by the stores, the aggregator and the HTTP layer."""

from __future__ import annotations

from typing import Dict, List, Optional


class FinanceError(Exception):
    """Base class for errors surfaced to callers."""


class ValidationError(FinanceError):
    """Input rejected before anything was written.

    ``fields`` maps a field name to its messages, the same shape the API
    returns under ``errors``.
    """

    def __init__(self, message: str = "Invalid input", fields: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or {}

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        fields: Dict[str, List[str]] = {}
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part != "__root__"]
            name = loc[0] if loc else "__all__"
            msg = err.get("msg", "Invalid value")
            # pydantic prefixes messages raised from validators
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            fields.setdefault(name, []).append(msg)
        return cls(fields=fields)


class NotFoundError(FinanceError):
    """No transaction exists with the given id."""

    def __init__(self, resource: str, ident):
        super().__init__(f"{resource} {ident} not found")
        self.resource = resource
        self.ident = ident


class StorageUnavailable(FinanceError):
    """Backing store could not be reached. Safe to retry."""
