"""
Host-side session: debounced submissions, last request wins.

Each :meth:`ModelSession.submit` cancels the previous request and schedules
the new one after a short debounce delay. Only the most recent request may
write the "currently displayed" artifact; a failed run keeps the previous
artifact on display and records the error instead.

Usage:
    session = ModelSession(on_result=print)
    token = session.submit(program_text)
    token.wait(30)
    session.displayed          # BinaryArtifact or None
"""

import logging
import threading
from typing import Callable, Optional

from ..dsl.runtime.budget import ExecutionBudget
from ..io.stl import BinaryArtifact
from ..outcome import PipelineError
from .compiler import CompileResult, compile
from .worker import compile_isolated

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.1

Runner = Callable[[str, ExecutionBudget, threading.Event], CompileResult]


def isolated_runner(text: str, budget: ExecutionBudget, cancel: threading.Event) -> CompileResult:
    return compile_isolated(text, budget, cancel_event=cancel)


def inprocess_runner(text: str, budget: ExecutionBudget, cancel: threading.Event) -> CompileResult:
    return compile(text, budget, cancelled=cancel.is_set)


class CancellationToken:
    """Handle on one submitted request."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._started = False
        self.result: Optional[CompileResult] = None

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the request finished or was dropped."""
        return self._done.wait(timeout)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "done" if self.done else "pending"
        return f"CancellationToken({self.request_id}, {state})"


class ModelSession:
    """Debounced, last-request-wins runner with one display slot."""

    def __init__(self,
                 budget: Optional[ExecutionBudget] = None,
                 debounce: float = DEFAULT_DEBOUNCE,
                 on_result: Optional[Callable[[CompileResult], None]] = None,
                 runner: Optional[Runner] = None):
        self.budget = budget or ExecutionBudget()
        self.debounce = debounce
        self.on_result = on_result
        self.runner = runner or isolated_runner
        self._lock = threading.Lock()
        self._request_id = 0
        self._token: Optional[CancellationToken] = None
        self._timer: Optional[threading.Timer] = None
        self._displayed: Optional[BinaryArtifact] = None
        self._last_error: Optional[PipelineError] = None

    @property
    def displayed(self) -> Optional[BinaryArtifact]:
        with self._lock:
            return self._displayed

    @property
    def last_error(self) -> Optional[PipelineError]:
        with self._lock:
            return self._last_error

    def submit(self, program_text: str) -> CancellationToken:
        """Schedule ``program_text``, cancelling any earlier request."""
        with self._lock:
            self._cancel_current()
            self._request_id += 1
            token = CancellationToken(self._request_id)
            self._token = token
            self._timer = threading.Timer(self.debounce, self._run, args=(token, program_text))
            self._timer.daemon = True
            self._timer.start()
        logger.debug("submitted request %d", token.request_id)
        return token

    def cancel(self) -> None:
        with self._lock:
            self._cancel_current()

    close = cancel

    def _cancel_current(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        token = self._token
        if token is not None and not token.done:
            token.cancel()
            if not token._started:
                # still waiting on its debounce timer, so it will never run
                token._done.set()
        self._token = None

    def _run(self, token: CancellationToken, program_text: str) -> None:
        with self._lock:
            if token.cancelled:
                token._done.set()
                return
            token._started = True
        try:
            result = self.runner(program_text, self.budget, token._cancel)
            token.result = result
            with self._lock:
                if token.cancelled or token is not self._token:
                    logger.debug("dropping stale result of request %d", token.request_id)
                    return
                if result.ok:
                    self._displayed = result.artifact
                    self._last_error = None
                elif result.error is not None:
                    self._last_error = result.error
            if self.on_result is not None:
                self.on_result(result)
        finally:
            token._done.set()


__all__ = [
    "DEFAULT_DEBOUNCE",
    "CancellationToken",
    "ModelSession",
    "isolated_runner",
    "inprocess_runner",
]
