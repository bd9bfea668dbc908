"""Field-scoped validation errors shared by the server and the console.

A ``FieldError`` is either *blocking* (the record cannot be saved) or
*advisory* (shown to the user, save proceeds). Advisory messages carry a
trailing ``(Warning)`` tag, and an error built from a bare message is
classified by that tag, so messages that arrive over the wire keep the
same meaning they have when built locally.
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass
from typing import Iterable

BLOCKING = "blocking"
ADVISORY = "advisory"
WARNING_TAG = "Warning"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    severity: str | None = None

    def __post_init__(self):
        if self.severity is None:
            derived = ADVISORY if WARNING_TAG in self.message else BLOCKING
            object.__setattr__(self, "severity", derived)

    @classmethod
    def from_message(cls, field: str, message: str) -> FieldError:
        return cls(field, message)

    @classmethod
    def advisory(cls, field: str, message: str) -> FieldError:
        if WARNING_TAG not in message:
            message = f"{message} ({WARNING_TAG})"
        return cls(field, message, ADVISORY)

    @classmethod
    def from_dict(cls, data: dict) -> FieldError:
        return cls.from_message(data.get("field") or "general", data.get("message") or "")

    @property
    def is_blocking(self) -> bool:
        return self.severity == BLOCKING

    def to_dict(self) -> dict:
        return asdict(self)


def blocking_errors(errors: Iterable[FieldError]) -> list[FieldError]:
    return [e for e in errors if e.is_blocking]


def errors_payload(errors: Iterable[FieldError]) -> dict:
    """JSON body for a field-error response: ``{"errors": [...]}``."""
    return {"errors": [{"field": e.field, "message": e.message} for e in errors]}


def is_blank(value) -> bool:
    """True for None and for strings that are empty after trimming."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_number(value) -> float | None:
    """Coerce *value* to float, returning None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Uniqueness violations
# ---------------------------------------------------------------------------

class UniqueViolation(Exception):
    """A write collided with a per-user unique constraint."""

    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__("; ".join(e.message for e in errors))


def unique_violation(
    exc: sqlite3.IntegrityError,
    columns: dict[str, tuple[str, str]],
) -> UniqueViolation | None:
    """Translate a sqlite UNIQUE failure into a field-scoped error.

    *columns* maps a column name to ``(field, message)``. Returns None when
    the integrity error is not one of the listed unique constraints.
    """
    text = str(exc)
    if "UNIQUE constraint failed" not in text:
        return None
    for column, (field, message) in columns.items():
        if f".{column}" in text:
            return UniqueViolation([FieldError(field, message)])
    return None
