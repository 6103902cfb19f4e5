"""
Pipeline entry point: program text in, verified binary STL out.

Stages run in order (validate, execute, reduce, encode) and every failure
is returned as a :class:`~morphos.outcome.PipelineError` on the result.
Nothing raised by a stage reaches the caller.

Usage:
    from morphos import compile, ExecutionBudget

    result = compile(text, ExecutionBudget(timeout_seconds=5))
    if result.ok:
        open("part.stl", "wb").write(result.artifact.data)
    else:
        print(result.error)
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..dsl.runtime.budget import ExecutionBudget
from ..errors import EncodingFailed, FailureCategory, MorphosError, SecurityRejection
from ..io.stl import BinaryArtifact, encode
from ..kernel.capabilities import CapabilitySet
from ..outcome import PipelineError, Program
from ..reducer import reduce
from ..sandbox import execute
from ..security import DEFAULT_MAX_PROGRAM_LENGTH, validate

logger = logging.getLogger(__name__)

NO_CODE = "no code provided"


@dataclass(frozen=True)
class CompileResult:
    """Outcome of one pipeline pass.

    Exactly one of ``artifact`` and ``error`` is set, unless the run was
    cancelled, in which case both are None.
    """
    artifact: Optional[BinaryArtifact] = None
    error: Optional[PipelineError] = None
    cancelled: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.artifact is not None


def compile_program(program: Program,
                    budget: Optional[ExecutionBudget] = None,
                    *,
                    capabilities: Optional[CapabilitySet] = None,
                    max_program_length: int = DEFAULT_MAX_PROGRAM_LENGTH,
                    cancelled: Optional[Callable[[], bool]] = None,
                    on_stage: Optional[Callable[[str], None]] = None,
                    name: str = "MORPHOS") -> CompileResult:
    """Run ``program`` through every stage of the pipeline.

    ``on_stage`` is called with "validate", "execute" and "encode" as each
    stage starts.
    """
    budget = budget or ExecutionBudget()
    stage = on_stage or (lambda _: None)
    if not program.text.strip():
        return CompileResult(error=PipelineError(FailureCategory.RUNTIME_FAILED, NO_CODE, "validate"))

    stage("validate")
    try:
        validate(program, max_program_length)
    except SecurityRejection as exc:
        return CompileResult(error=PipelineError.from_exception(exc, "validate"))

    logger.debug("executing program (%d characters)", len(program))
    stage("execute")
    outcome = execute(program, capabilities, budget, cancelled)
    if cancelled is not None and cancelled():
        logger.debug("run cancelled")
        return CompileResult(cancelled=True)
    if not outcome.ok:
        logger.info("execution failed: %s", outcome.message.splitlines()[0] if outcome.message else "")
        return CompileResult(error=PipelineError.from_outcome(outcome, "execute"))

    warnings: list = []
    stage("encode")
    try:
        solid = reduce(outcome.geometry, warnings=warnings)
        artifact = encode(solid, name=name, max_triangles=budget.max_triangles)
        artifact.verify()
    except EncodingFailed as exc:
        return CompileResult(error=PipelineError.from_exception(exc, "encode"), warnings=tuple(warnings))
    except MorphosError as exc:
        return CompileResult(error=PipelineError.from_exception(exc, "reduce"), warnings=tuple(warnings))

    logger.info("compiled %d triangles (%d bytes)", artifact.triangle_count, len(artifact))
    return CompileResult(artifact=artifact, warnings=tuple(warnings))


def compile(program_text: str,
            budget: Optional[ExecutionBudget] = None,
            **kwargs) -> CompileResult:
    """Compile program text; see :func:`compile_program` for keyword options."""
    return compile_program(Program(program_text or ""), budget, **kwargs)


__all__ = ["NO_CODE", "CompileResult", "compile_program", "compile"]
