"""
Sandboxed Executor: run a validated program and capture what ``main`` returns.

The program text is parsed by :mod:`morphos.dsl` and executed by the
tree-walking interpreter in a closed root scope built from a
:class:`~morphos.kernel.capabilities.CapabilitySet`. No host ``eval`` or
``exec`` is involved and nothing raised inside the run escapes:
every failure is reported as an :class:`~morphos.outcome.ExecutionOutcome`.
"""

import logging
from typing import Any, Callable, List, Optional

from .dsl import DslError, parse_source
from .dsl.runtime import (
    BudgetExceeded, BudgetMeter, ExecutionBudget, ExecutionCancelled,
    Interpreter, is_callable, is_nullish, type_of,
)
from .kernel.capabilities import CapabilitySet, default_capabilities
from .kernel.geometry import Outline, Solid
from .outcome import (
    ExecutionOutcome, Program, RuntimeFailed, SolidCollection, Success, Timeout,
)

logger = logging.getLogger(__name__)

ENTRY_POINT = "main"

MISSING_MAIN = "Code must define a main() function"
NO_GEOMETRY = "main() returned no geometry"
EMPTY_ARRAY = "main() returned empty array"
OUTLINE_RESULT = ("main() returned a 2D outline; extrude it "
                  "(extrusions.extrudeLinear or extrusions.extrudeRotate) to get a solid")


def execute(program: Program,
            capabilities: Optional[CapabilitySet] = None,
            budget: Optional[ExecutionBudget] = None,
            cancelled: Optional[Callable[[], bool]] = None) -> ExecutionOutcome:
    """Execute ``program`` and classify the value returned by ``main()``.

    Args:
        program: Program text that already passed the Security Gate
        capabilities: Names visible to the program (default set if omitted)
        budget: Time, step and call-depth limits
        cancelled: Polled during execution; returning True aborts the run

    Returns:
        Success, RuntimeFailed or Timeout
    """
    capabilities = capabilities or default_capabilities()
    budget = budget or ExecutionBudget()
    text = program.text

    try:
        tree = parse_source(text)
    except DslError as err:
        return RuntimeFailed(str(err))
    except RecursionError:
        return RuntimeFailed("program is nested too deeply to parse")

    if not tree.declares(ENTRY_POINT):
        return RuntimeFailed(MISSING_MAIN)

    meter = BudgetMeter(budget, cancelled)
    interp = Interpreter(capabilities.root_scope(), meter, text)
    try:
        scope = interp.execute_program(tree)
        entry = scope.get(ENTRY_POINT)
        if not is_callable(entry):
            return RuntimeFailed(f"main is not a function (got {type_of(entry)})")
        value = interp.call_function(entry, [])
    except BudgetExceeded as exc:
        logger.info("program exhausted its budget: %s", exc.message)
        return Timeout(exc.message)
    except ExecutionCancelled as exc:
        return Timeout(exc.message)
    except DslError as err:
        return RuntimeFailed(str(err))
    except RecursionError:
        return RuntimeFailed("RangeError: maximum call stack size exceeded")
    except MemoryError:
        return RuntimeFailed("RangeError: out of memory")
    except Exception as exc:
        logger.exception("unexpected error while executing program")
        return RuntimeFailed(f"{type(exc).__name__}: {exc}")

    logger.debug("program finished after %d steps in %.3fs", meter.steps, meter.elapsed)
    return classify(value)


def classify(value: Any) -> ExecutionOutcome:
    """Turn the value returned by ``main`` into an outcome."""
    if isinstance(value, Solid):
        return Success(value)
    if isinstance(value, (list, tuple)):
        items = _flatten(value)
        if not items:
            return RuntimeFailed(EMPTY_ARRAY)
        return Success(SolidCollection(tuple(items)))
    if isinstance(value, Outline):
        return RuntimeFailed(OUTLINE_RESULT)
    if is_nullish(value):
        return RuntimeFailed(NO_GEOMETRY)
    return RuntimeFailed(f"main() returned {type_of(value)}, expected a solid")


def _flatten(values) -> List[Any]:
    items: List[Any] = []
    for value in values:
        if isinstance(value, (list, tuple)):
            items.extend(_flatten(value))
        else:
            items.append(value)
    return items


__all__ = [
    "ENTRY_POINT",
    "MISSING_MAIN",
    "NO_GEOMETRY",
    "EMPTY_ARRAY",
    "execute",
    "classify",
]
