"""Pipeline entry points: in-process, isolated worker and debounced session."""

from .compiler import CompileResult, compile, compile_program
from .worker import compile_isolated
from .session import CancellationToken, ModelSession

__all__ = [
    "CompileResult",
    "compile",
    "compile_program",
    "compile_isolated",
    "CancellationToken",
    "ModelSession",
]
