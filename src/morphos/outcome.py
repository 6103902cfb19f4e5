"""Value types that flow between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from .errors import FailureCategory, MorphosError


@dataclass(frozen=True)
class Program:
    """Immutable program text. Not executable until the Security Gate passes it."""
    text: str

    def __post_init__(self):
        if not isinstance(self.text, str):
            raise TypeError(f"program text must be str, not {type(self.text).__name__}")

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class SolidCollection:
    """A collection returned by ``main``; entries are not yet known to be solids."""
    items: Tuple[Any, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


# ---------------------------------------------------------------------------
# Execution outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExecutionOutcome:
    """Base class of the executor's tagged result."""

    @property
    def ok(self) -> bool:
        return False

    @property
    def category(self) -> Optional[FailureCategory]:
        return None

    @property
    def message(self) -> str:
        return ""


@dataclass(frozen=True)
class Success(ExecutionOutcome):
    """``main`` returned geometry: a Solid or a SolidCollection."""
    geometry: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class SecurityRejected(ExecutionOutcome):
    reason: str = ""
    violations: Tuple[Any, ...] = ()

    @property
    def category(self) -> FailureCategory:
        return FailureCategory.SECURITY_REJECTED

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class RuntimeFailed(ExecutionOutcome):
    error: str = ""

    @property
    def category(self) -> FailureCategory:
        return FailureCategory.RUNTIME_FAILED

    @property
    def message(self) -> str:
        return self.error


@dataclass(frozen=True)
class Timeout(ExecutionOutcome):
    detail: str = "execution budget exhausted"

    @property
    def category(self) -> FailureCategory:
        return FailureCategory.TIMEOUT

    @property
    def message(self) -> str:
        return self.detail


# ---------------------------------------------------------------------------
# Pipeline-level failure record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PipelineError:
    """A failure as reported to the host and to the correction loop."""
    category: FailureCategory
    message: str
    stage: str = ""
    retryable: bool = True
    details: Tuple[str, ...] = field(default=())

    def __str__(self) -> str:
        return f"{self.category.value}: {self.message}"

    @classmethod
    def from_exception(cls, exc: MorphosError, stage: str = "") -> "PipelineError":
        category = exc.category or FailureCategory.RUNTIME_FAILED
        retryable = getattr(exc, "retryable", True)
        details: Tuple[str, ...] = ()
        violations = getattr(exc, "violations", None)
        if violations:
            details = tuple(str(v) for v in violations)
        return cls(category, exc.message, stage, retryable, details)

    @classmethod
    def from_outcome(cls, outcome: ExecutionOutcome, stage: str = "execute") -> "PipelineError":
        if outcome.ok:
            raise ValueError("a successful outcome is not an error")
        details: Tuple[str, ...] = ()
        if isinstance(outcome, SecurityRejected):
            details = tuple(str(v) for v in outcome.violations)
        return cls(outcome.category, outcome.message, stage, True, details)


__all__ = [
    "Program",
    "SolidCollection",
    "ExecutionOutcome",
    "Success",
    "SecurityRejected",
    "RuntimeFailed",
    "Timeout",
    "PipelineError",
]
