"""Result-or-error value returned by the model factories."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pydantic import ValidationError

from rodcache.core.exceptions import RecordValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class BuildResult(Generic[T]):
    """Either a fully validated value or the reason it could not be built."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    def unwrap(self) -> T:
        """Return the value or raise RecordValidationError with the failure reason."""
        if not self.ok:
            raise RecordValidationError(self.error or "no value")
        return self.value


def describe_validation_error(model_name: str, exc: ValidationError) -> str:
    """Collapse a pydantic ValidationError into a single log-friendly line."""
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "<model>"
        problems.append(f"{field}: {err.get('msg')}")
    return f"Attempted to build {model_name} object but " + "; ".join(problems)
