"""Solid Reducer: normalise what ``main`` returned into exactly one solid."""

import logging
from typing import Any, Callable, List, Optional

from .errors import KernelError, RuntimeFailedError
from .kernel.booleans import union as kernel_union
from .kernel.geometry import Solid
from .outcome import SolidCollection

logger = logging.getLogger(__name__)

UNION_FALLBACK_WARNING = "union of the returned solids failed; using the first solid only"


def reduce(value: Any,
           union: Optional[Callable[..., Solid]] = None,
           warnings: Optional[List[str]] = None) -> Solid:
    """Reduce a Solid or a SolidCollection to one Solid.

    A collection is filtered to its solids and unioned. When the union fails
    the first solid is returned instead, a WARNING is logged and a message is
    appended to ``warnings``.

    Raises:
        RuntimeFailedError: when no solid remains
    """
    if isinstance(value, Solid):
        return value
    if not isinstance(value, (SolidCollection, list, tuple)):
        raise RuntimeFailedError("main() returned no geometry")

    solids = [item for item in value if isinstance(item, Solid)]
    skipped = len(value) - len(solids)
    if skipped:
        logger.debug("ignoring %d non-solid entries in returned array", skipped)
    if not solids:
        raise RuntimeFailedError("main() returned no geometry")
    if len(solids) == 1:
        return solids[0]

    union = union or kernel_union
    try:
        result = union(*solids)
        if not isinstance(result, Solid) or result.is_empty:
            raise KernelError("union produced no geometry")
        return result
    except Exception as exc:
        logger.warning("union of %d solids failed, keeping the first: %s", len(solids), exc)
        if warnings is not None:
            warnings.append(f"{UNION_FALLBACK_WARNING} ({exc})")
        return solids[0]


__all__ = ["UNION_FALLBACK_WARNING", "reduce"]
