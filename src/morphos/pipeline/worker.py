"""
Run the pipeline in an isolated worker process.

The worker is started with the ``spawn`` start method, so it shares no
memory with the host: it builds its own capability set, owns every solid it
creates and sends back only the :class:`CompileResult` (encoded bytes or a
failure record) through a one-way pipe. A worker that has not answered
within the wall-clock budget plus a grace period is terminated, then killed.
"""

import logging
import multiprocessing
import sys
import threading
import time
from typing import Optional

from ..dsl.runtime.budget import ExecutionBudget
from ..errors import FailureCategory
from ..outcome import PipelineError
from ..security import DEFAULT_MAX_PROGRAM_LENGTH
from .compiler import CompileResult, compile

logger = logging.getLogger(__name__)

GRACE_SECONDS = 3.0
POLL_INTERVAL = 0.05
WORKER_RECURSION_LIMIT = 20_000


def _worker_main(conn, program_text: str, budget: ExecutionBudget, max_program_length: int) -> None:
    # The interpreter recurses once per nested script call and expression
    sys.setrecursionlimit(WORKER_RECURSION_LIMIT)
    try:
        result = compile(program_text, budget, max_program_length=max_program_length)
        conn.send(result)
    finally:
        conn.close()


def _stop(process) -> None:
    if not process.is_alive():
        return
    process.terminate()
    process.join(1.0)
    if process.is_alive():
        logger.warning("worker %s ignored terminate, killing it", process.pid)
        process.kill()
        process.join(1.0)


def compile_isolated(program_text: str,
                     budget: Optional[ExecutionBudget] = None,
                     *,
                     cancel_event: Optional[threading.Event] = None,
                     grace: float = GRACE_SECONDS,
                     max_program_length: int = DEFAULT_MAX_PROGRAM_LENGTH) -> CompileResult:
    """Compile ``program_text`` in a fresh worker process.

    Setting ``cancel_event`` terminates the worker and yields a cancelled
    result. A worker that dies or overruns its deadline yields a Timeout
    or RuntimeFailed error; nothing from the worker is trusted beyond the
    returned record.
    """
    budget = budget or ExecutionBudget()
    ctx = multiprocessing.get_context("spawn")
    receiver, sender = ctx.Pipe(duplex=False)
    process = ctx.Process(
        target=_worker_main,
        args=(sender, program_text, budget, max_program_length),
        daemon=True,
    )
    process.start()
    sender.close()
    deadline = time.monotonic() + budget.timeout_seconds + grace
    logger.debug("started worker %s", process.pid)

    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                logger.debug("cancelling worker %s", process.pid)
                return CompileResult(cancelled=True)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info("worker %s exceeded %.1fs, terminating", process.pid,
                            budget.timeout_seconds + grace)
                return CompileResult(error=PipelineError(
                    FailureCategory.TIMEOUT,
                    f"execution exceeded {budget.timeout_seconds:g} seconds",
                    "execute",
                ))
            if receiver.poll(min(POLL_INTERVAL, remaining)):
                try:
                    return receiver.recv()
                except EOFError:
                    process.join(1.0)
                    return CompileResult(error=PipelineError(
                        FailureCategory.RUNTIME_FAILED,
                        f"worker exited without a result (exit code {process.exitcode})",
                        "execute",
                    ))
    finally:
        receiver.close()
        _stop(process)
        process.join(0.1)


__all__ = ["GRACE_SECONDS", "compile_isolated"]
