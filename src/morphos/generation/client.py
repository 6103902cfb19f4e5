"""
Generation collaborator client.

:class:`OpenAIGenerationClient` talks to any OpenAI-compatible chat endpoint
(by default Gemini's compatibility endpoint) through the ``openai`` SDK.
Transient failures and unusable answers are retried with exponential
backoff via ``tenacity``; authentication failures are not. When the
attempts run out the failure is raised as
:class:`~morphos.errors.CollaboratorUnavailable`.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Deque, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    InternalServerError,
    OpenAI,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError,
)
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import CollaboratorUnavailable
from .prompts import GenerationRequest, build_messages
from .sanitize import InvalidResponseError, sanitize_response

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-2.5-flash"
KNOWN_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
)
DEFAULT_TEMPERATURE = 0.2
DEFAULT_TOP_P = 0.8
DEFAULT_MAX_TOKENS = 8192
DEFAULT_ATTEMPTS = 2


class GenerationClient(ABC):
    """Produces program text for a :class:`GenerationRequest`."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> str:
        """Return program text, or raise CollaboratorUnavailable."""


class RateLimiter:
    """Sliding-window limit on the number of calls."""

    def __init__(self, max_calls: int = 5, window_seconds: float = 86_400.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_calls <= 0 or window_seconds <= 0:
            raise ValueError("max_calls and window_seconds must be positive")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._calls: Deque[float] = deque()
        self._lock = threading.Lock()

    def _expire(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    def try_acquire(self) -> bool:
        """Record a call if the window has room; False otherwise."""
        with self._lock:
            now = self._clock()
            self._expire(now)
            if len(self._calls) >= self.max_calls:
                return False
            self._calls.append(now)
            return True

    def remaining(self) -> int:
        with self._lock:
            self._expire(self._clock())
            return max(0, self.max_calls - len(self._calls))

    def reset_in(self) -> float:
        """Seconds until the oldest recorded call leaves the window."""
        with self._lock:
            now = self._clock()
            self._expire(now)
            if not self._calls:
                return 0.0
            return self._calls[0] + self.window_seconds - now


def _status(exc: BaseException) -> Optional[int]:
    return exc.status_code if isinstance(exc, APIStatusError) else None


def should_retry(exc: BaseException) -> bool:
    """True for failures another attempt may fix."""
    if isinstance(exc, (AuthenticationError, PermissionDeniedError)):
        return False
    if isinstance(exc, (InvalidResponseError, RateLimitError, InternalServerError, APIConnectionError)):
        return True
    status = _status(exc)
    return status is not None and (status >= 500 or status in (408, 429))


def classify_collaborator_error(exc: BaseException) -> CollaboratorUnavailable:
    """Map a client or SDK failure onto a CollaboratorUnavailable."""
    if isinstance(exc, CollaboratorUnavailable):
        return exc
    message = str(exc) or type(exc).__name__
    lowered = message.lower()
    status = _status(exc)
    if isinstance(exc, (AuthenticationError, PermissionDeniedError)) or status in (401, 403) \
            or "api key" in lowered:
        return CollaboratorUnavailable(f"authentication failed: {message}", "authentication", retryable=False)
    if isinstance(exc, RateLimitError) or status == 429 or "quota" in lowered or "rate limit" in lowered:
        return CollaboratorUnavailable(f"quota exceeded: {message}", "quota")
    if isinstance(exc, APITimeoutError) or "timed out" in lowered or "timeout" in lowered:
        return CollaboratorUnavailable(f"request timed out: {message}", "timeout")
    if isinstance(exc, APIConnectionError) or "network" in lowered:
        return CollaboratorUnavailable(f"network error: {message}", "network")
    if isinstance(exc, InvalidResponseError):
        return CollaboratorUnavailable(f"invalid response: {message}", "invalid-response")
    return CollaboratorUnavailable(message, "unknown")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    sleep = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning("generation attempt %d failed (%s: %s); retrying in %.1fs",
                   retry_state.attempt_number, type(exc).__name__, exc, sleep)


class OpenAIGenerationClient(GenerationClient):
    """Generation client for OpenAI-compatible chat completion endpoints."""

    def __init__(self,
                 api_key: Optional[str] = None,
                 *,
                 base_url: str = DEFAULT_BASE_URL,
                 model: str = DEFAULT_MODEL,
                 temperature: float = DEFAULT_TEMPERATURE,
                 top_p: float = DEFAULT_TOP_P,
                 max_tokens: int = DEFAULT_MAX_TOKENS,
                 request_timeout: float = 60.0,
                 max_attempts: int = DEFAULT_ATTEMPTS,
                 wait: Any = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 client: Any = None):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self.max_attempts = max_attempts
        self.wait = wait if wait is not None else wait_exponential(multiplier=1, min=1, max=8)
        self.rate_limiter = rate_limiter
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise CollaboratorUnavailable("no API key configured", "authentication", retryable=False)
            # Retries are handled here, not by the SDK
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url,
                                  timeout=self.request_timeout, max_retries=0)
        return self._client

    def generate(self, request: GenerationRequest) -> str:
        if self.rate_limiter is not None and not self.rate_limiter.try_acquire():
            raise CollaboratorUnavailable(
                f"rate limit reached; retry in {self.rate_limiter.reset_in():.0f}s", "quota")

        messages = build_messages(request)
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            retry=retry_if_exception(should_retry),
            reraise=True,
            before_sleep=_log_retry,
        )
        try:
            return retrying(self._complete, messages)
        except (OpenAIError, InvalidResponseError) as exc:
            error = classify_collaborator_error(exc)
            logger.error("generation failed: %s", error.message)
            raise error from exc

    def _complete(self, messages) -> str:
        logger.debug("requesting completion from %s (%s)", self.model, self.base_url)
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )
        if not (response and response.choices and response.choices[0].message
                and response.choices[0].message.content):
            raise InvalidResponseError("empty completion")
        return sanitize_response(response.choices[0].message.content)


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "KNOWN_MODELS",
    "GenerationClient",
    "RateLimiter",
    "should_retry",
    "classify_collaborator_error",
    "OpenAIGenerationClient",
]
