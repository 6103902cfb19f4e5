"""
Failure taxonomy for the MORPHOS pipeline.

Every failure that can leave the pipeline belongs to exactly one
``FailureCategory``. Inside a stage failures travel as ``MorphosError``
subclasses; at stage boundaries they are turned into value records
(``morphos.outcome.PipelineError``) so that nothing escapes to the host.
"""

from enum import Enum
from typing import List, Optional


class FailureCategory(Enum):
    """The closed set of pipeline failure classes."""
    SECURITY_REJECTED = "security-rejected"
    RUNTIME_FAILED = "runtime-failed"
    TIMEOUT = "timeout"
    ENCODING_FAILED = "encoding-failed"
    COLLABORATOR_UNAVAILABLE = "collaborator-unavailable"


class MorphosError(Exception):
    """Base exception for all pipeline failures."""

    category: Optional[FailureCategory] = None

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SecurityRejection(MorphosError):
    """The Security Gate refused a program.

    ``violations`` lists every denylist hit found in the single scan pass and
    ``sanitized`` holds the program text with each hit replaced by an inert
    marker, which is useful when asking for a corrected program.
    """

    category = FailureCategory.SECURITY_REJECTED

    def __init__(self, reason: str, violations: Optional[List] = None,
                 sanitized: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.violations = list(violations or [])
        self.sanitized = sanitized


class RuntimeFailedError(MorphosError):
    """The program ran (or tried to) and did not produce a usable solid."""
    category = FailureCategory.RUNTIME_FAILED


class TimeoutExpired(MorphosError):
    """The execution budget was exhausted."""
    category = FailureCategory.TIMEOUT


class EncodingFailed(MorphosError):
    """A solid could not be turned into a valid binary mesh artifact."""
    category = FailureCategory.ENCODING_FAILED


class CollaboratorUnavailable(MorphosError):
    """The generation collaborator could not be reached or gave no usable answer.

    ``retryable`` is False for failures that retrying cannot fix, such as a
    rejected API key.
    """

    category = FailureCategory.COLLABORATOR_UNAVAILABLE

    def __init__(self, message: str, kind: str = "unknown", retryable: bool = True):
        super().__init__(message)
        self.kind = kind
        self.retryable = retryable


class KernelError(ValueError):
    """A geometry kernel call received invalid arguments or failed.

    Raised by ``morphos.kernel``; inside a running program it surfaces as a
    catchable script ``Error``.
    """
    pass


class ConfigError(Exception):
    """Invalid configuration file or environment value."""
    pass


__all__ = [
    "FailureCategory",
    "MorphosError",
    "SecurityRejection",
    "RuntimeFailedError",
    "TimeoutExpired",
    "EncodingFailed",
    "CollaboratorUnavailable",
    "KernelError",
    "ConfigError",
]
