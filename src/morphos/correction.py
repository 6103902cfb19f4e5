"""
Correction Loop: resubmit failing programs to the generation collaborator.

Per request the loop moves through::

    GENERATED -> VALIDATING -> EXECUTING -> ENCODING -> SUCCEEDED
                      \\            |           /
                       +-------> FAILED <----+
                                   |
              attempt < ceiling ---+--- attempt >= ceiling
                 (new program,           TERMINAL_FAILURE
                  back to VALIDATING)

``attempt_number`` counts failed pipeline passes for the request, so with
the default ceiling of 2 a request gets one corrected program before the
loop gives up. A failed run never leaves an artifact on the result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union

from .dsl.runtime.budget import ExecutionBudget
from .errors import CollaboratorUnavailable, FailureCategory
from .generation.client import GenerationClient
from .generation.prompts import GenerationRequest
from .io.stl import BinaryArtifact
from .outcome import PipelineError, Program
from .pipeline.compiler import CompileResult, compile_program

logger = logging.getLogger(__name__)

DEFAULT_RETRY_CEILING = 2


class LoopState(Enum):
    GENERATED = "generated"
    VALIDATING = "validating"
    EXECUTING = "executing"
    ENCODING = "encoding"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TERMINAL_FAILURE = "terminal-failure"


_STAGE_STATES = {
    "validate": LoopState.VALIDATING,
    "execute": LoopState.EXECUTING,
    "encode": LoopState.ENCODING,
}


@dataclass(frozen=True)
class CorrectionAttempt:
    """Everything the collaborator needs to fix a failed program."""
    original_prompt: str
    failing_program: str
    failure_message: str
    attempt_number: int
    category: FailureCategory

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            natural_language_spec=self.original_prompt,
            prior_program=self.failing_program,
            prior_error=f"[{self.category.value}] {self.failure_message}",
        )


@dataclass(frozen=True)
class TerminalFailure:
    """The loop gave up; ``error`` is the last failure seen."""
    error: PipelineError
    attempts: int
    reason: str = ""


@dataclass(frozen=True)
class Transition:
    state: LoopState
    attempt: int
    detail: str = ""


@dataclass
class CorrectionContext:
    """Per-request state carried between attempts."""
    prompt: str
    program: Program
    history: List[str] = field(default_factory=list)


@dataclass
class LoopResult:
    artifact: Optional[BinaryArtifact] = None
    program: Optional[Program] = None
    error: Optional[PipelineError] = None
    attempts: int = 0
    transitions: List[Transition] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    # program text of every pass, oldest first
    history: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.artifact is not None

    @property
    def states(self) -> List[LoopState]:
        return [t.state for t in self.transitions]


Compiler = Callable[..., CompileResult]


class CorrectionLoop:
    """Drive one request from prompt (or program) to artifact or terminal failure."""

    def __init__(self,
                 client: GenerationClient,
                 budget: Optional[ExecutionBudget] = None,
                 retry_ceiling: int = DEFAULT_RETRY_CEILING,
                 compiler: Optional[Compiler] = None):
        if retry_ceiling < 1:
            raise ValueError("retry_ceiling must be at least 1")
        self.client = client
        self.budget = budget or ExecutionBudget()
        self.retry_ceiling = retry_ceiling
        self.compiler = compiler or compile_program

    def on_failure(self, failure: PipelineError, context: CorrectionContext,
                   attempt_number: int) -> Union[Program, TerminalFailure]:
        """Decide what follows a failed pass: a corrected program or the end."""
        if attempt_number >= self.retry_ceiling:
            return TerminalFailure(failure, attempt_number, "retry ceiling reached")
        if failure.category is FailureCategory.COLLABORATOR_UNAVAILABLE or not failure.retryable:
            return TerminalFailure(failure, attempt_number, "failure is not retryable")

        attempt = CorrectionAttempt(
            original_prompt=context.prompt,
            failing_program=context.program.text,
            failure_message=failure.message,
            attempt_number=attempt_number,
            category=failure.category,
        )
        logger.info("requesting correction %d/%d for %s failure",
                    attempt_number, self.retry_ceiling - 1, failure.category.value)
        try:
            text = self.client.generate(attempt.to_request())
        except CollaboratorUnavailable as exc:
            return TerminalFailure(PipelineError.from_exception(exc, "correct"), attempt_number,
                                   "generation collaborator unavailable")

        corrected = Program(text)
        if failure.category is FailureCategory.SECURITY_REJECTED and corrected.text == context.program.text:
            # the gate would reject the same text again
            error = PipelineError(failure.category, failure.message, failure.stage, False, failure.details)
            return TerminalFailure(error, attempt_number, "corrected program is unchanged")
        return corrected

    def run(self, prompt: str, program: Optional[Union[str, Program]] = None) -> LoopResult:
        """Run a request to completion.

        Without ``program`` the first program is requested from the client.
        """
        result = LoopResult()

        def record(state: LoopState, detail: str = "") -> None:
            result.transitions.append(Transition(state, result.attempts, detail))
            logger.debug("loop state %s (attempt %d) %s", state.name, result.attempts, detail)

        if program is None:
            try:
                text = self.client.generate(GenerationRequest(prompt))
            except CollaboratorUnavailable as exc:
                result.error = PipelineError.from_exception(exc, "generate")
                record(LoopState.TERMINAL_FAILURE, result.error.message)
                logger.error("generation failed: %s", result.error.message)
                return result
            program = Program(text)
        elif isinstance(program, str):
            program = Program(program)

        context = CorrectionContext(prompt, program, result.history)
        record(LoopState.GENERATED)
        while True:
            context.history.append(context.program.text)
            compiled = self.compiler(
                context.program,
                self.budget,
                on_stage=lambda stage: record(_STAGE_STATES[stage]),
            )
            result.program = context.program
            result.warnings.extend(compiled.warnings)
            if compiled.ok:
                result.artifact = compiled.artifact
                result.error = None
                record(LoopState.SUCCEEDED)
                logger.info("request succeeded after %d failed attempt(s)", result.attempts)
                return result

            error = compiled.error or PipelineError(FailureCategory.RUNTIME_FAILED, "run cancelled", "execute")
            result.attempts += 1
            result.error = error
            record(LoopState.FAILED, error.message)

            decision = self.on_failure(error, context, result.attempts)
            if isinstance(decision, TerminalFailure):
                result.error = decision.error
                record(LoopState.TERMINAL_FAILURE, decision.reason)
                logger.error("request failed: %s (%s)", decision.error.message, decision.reason)
                return result
            context.program = decision


__all__ = [
    "DEFAULT_RETRY_CEILING",
    "LoopState",
    "CorrectionAttempt",
    "TerminalFailure",
    "Transition",
    "CorrectionContext",
    "LoopResult",
    "CorrectionLoop",
]
