"""
Execution budget for one program run.

The interpreter calls :meth:`BudgetMeter.tick` once per statement, loop
iteration and function call. Exhausting the budget raises
:class:`BudgetExceeded`, which is not a script error, so ``try/catch`` in a
program cannot intercept it.
"""

from dataclasses import dataclass
from typing import Callable, Optional
import time

from ...errors import MorphosError, FailureCategory, TimeoutExpired


@dataclass(frozen=True)
class ExecutionBudget:
    """Resource limits for a single run.

    Attributes:
        timeout_seconds: wall-clock limit for execution
        max_steps: interpreter steps (statements, iterations, calls)
        max_call_depth: nesting limit for script function calls
        max_triangles: encoder ceiling for the produced mesh
    """
    timeout_seconds: float = 10.0
    max_steps: int = 5_000_000
    max_call_depth: int = 64
    max_triangles: int = 2_000_000

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.max_steps <= 0:
            raise ValueError("max_steps must be positive")
        if self.max_call_depth <= 0:
            raise ValueError("max_call_depth must be positive")
        if self.max_triangles <= 0:
            raise ValueError("max_triangles must be positive")


class BudgetExceeded(TimeoutExpired):
    """Raised when a run exhausts its step or time allowance."""


class ExecutionCancelled(MorphosError):
    """Raised when the host cancels a run that is still executing."""
    category = FailureCategory.TIMEOUT


# Check the clock only every N steps; time.monotonic() is comparatively slow.
_CLOCK_INTERVAL = 256


class BudgetMeter:
    """Counts interpreter steps against an :class:`ExecutionBudget`."""

    def __init__(self, budget: ExecutionBudget,
                 cancelled: Optional[Callable[[], bool]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.budget = budget
        self.steps = 0
        self._cancelled = cancelled
        self._clock = clock
        self._deadline = clock() + budget.timeout_seconds

    def tick(self) -> None:
        self.steps += 1
        if self.steps > self.budget.max_steps:
            raise BudgetExceeded(
                f"execution exceeded {self.budget.max_steps} steps")
        if self.steps % _CLOCK_INTERVAL == 0:
            self.check()

    def check(self) -> None:
        """Check the deadline and the cancellation flag."""
        if self._clock() > self._deadline:
            raise BudgetExceeded(
                f"execution exceeded {self.budget.timeout_seconds:g} seconds")
        if self._cancelled is not None and self._cancelled():
            raise ExecutionCancelled("execution cancelled")

    @property
    def elapsed(self) -> float:
        return self.budget.timeout_seconds - (self._deadline - self._clock())


__all__ = ["ExecutionBudget", "BudgetMeter", "BudgetExceeded", "ExecutionCancelled"]
