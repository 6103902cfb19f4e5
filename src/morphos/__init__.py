# -*- coding: utf-8 -*-
"""MORPHOS core: untrusted JSCAD-style program text in, verified binary STL out."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("morphos")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

from .errors import (
    FailureCategory,
    MorphosError,
    SecurityRejection,
    RuntimeFailedError,
    TimeoutExpired,
    EncodingFailed,
    CollaboratorUnavailable,
    ConfigError,
)
from .outcome import (
    Program,
    PipelineError,
    Success,
    SecurityRejected,
    RuntimeFailed,
    Timeout,
    SolidCollection,
)
from .dsl.runtime.budget import ExecutionBudget
from .pipeline.compiler import compile, compile_program, CompileResult
from .pipeline.worker import compile_isolated
from .pipeline.session import ModelSession, CancellationToken

__all__ = [
    "__version__",
    "FailureCategory",
    "MorphosError",
    "SecurityRejection",
    "RuntimeFailedError",
    "TimeoutExpired",
    "EncodingFailed",
    "CollaboratorUnavailable",
    "ConfigError",
    "Program",
    "PipelineError",
    "Success",
    "SecurityRejected",
    "RuntimeFailed",
    "Timeout",
    "SolidCollection",
    "ExecutionBudget",
    "compile",
    "compile_program",
    "CompileResult",
    "compile_isolated",
    "ModelSession",
    "CancellationToken",
]
