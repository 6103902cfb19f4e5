"""
Script-specific exceptions and error handling.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors raised while a program runs
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, E401, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.span is not None:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {"line": self.span.start.line, "column": self.span.start.column},
                "end": {"line": self.span.end.line, "column": self.span.end.column},
            }
        return data


class DslError(Exception):
    """Base exception for script errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(DslError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(DslError):
    """Error during parsing (E1xx)."""
    pass


class ScriptError(DslError):
    """An error raised inside a running program (E4xx).

    ``kind`` is the JavaScript error name (``TypeError``, ``ReferenceError``,
    ``RangeError``, ``Error``). ``thrown`` holds the value of a ``throw``
    statement so a ``catch`` clause can bind it unchanged.
    """

    def __init__(self, diagnostic: Diagnostic, kind: str = "Error", thrown: Any = None):
        super().__init__(diagnostic)
        self.kind = kind
        self.thrown = thrown
        self.is_throw = False

    @property
    def js_message(self) -> str:
        """The message as a JavaScript program would print it."""
        return f"{self.kind}: {self.diagnostic.message}"


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with matching quotes"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated multi-line comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated multi-line comment (expected closing */)",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\', \\\", \\\\, \\0, \\xHH, \\uHHHH"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_hex_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E007: Invalid hexadecimal literal."""
    diag = Diagnostic(
        code="E007",
        message=f"invalid hexadecimal literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["hex literals must contain at least one hex digit: 0x1, 0xFF, etc."],
    )
    return LexerError(diag)


def error_template_interpolation(span: SourceSpan, source_line: str = None) -> LexerError:
    """E008: Template literal with ${...} interpolation."""
    diag = Diagnostic(
        code="E008",
        message="template literal interpolation is not supported",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["build strings with '+' instead of `${...}`"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of file."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of file, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_invalid_expression(span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Invalid expression."""
    diag = Diagnostic(
        code="E103",
        message="invalid expression",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unsupported_syntax(what: str, span: SourceSpan, source_line: str = None,
                             hint: Optional[str] = None) -> ParserError:
    """E104: Syntax that is valid JavaScript but not supported by the runtime."""
    diag = Diagnostic(
        code="E104",
        message=f"'{what}' is not supported",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=[hint] if hint else [],
    )
    return ParserError(diag)


def error_invalid_assignment_target(span: SourceSpan, source_line: str = None) -> ParserError:
    """E105: Invalid left-hand side in assignment."""
    diag = Diagnostic(
        code="E105",
        message="invalid left-hand side in assignment",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_missing_initializer(name: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E106: const declaration without a value."""
    diag = Diagnostic(
        code="E106",
        message=f"missing initializer in const declaration '{name}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


# --- Runtime error codes ---

def _runtime(code: str, kind: str, message: str, span: Optional[SourceSpan],
             source_line: Optional[str] = None, hints: Optional[List[str]] = None) -> ScriptError:
    diag = Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )
    return ScriptError(diag, kind)


def error_not_defined(name: str, span: Optional[SourceSpan] = None,
                      source_line: str = None) -> ScriptError:
    """E401: Reference to an unbound name."""
    return _runtime("E401", "ReferenceError", f"{name} is not defined", span, source_line)


def error_type(message: str, span: Optional[SourceSpan] = None,
               source_line: str = None) -> ScriptError:
    """E402: Operation applied to a value of the wrong kind."""
    return _runtime("E402", "TypeError", message, span, source_line)


def error_call_stack(limit: int, span: Optional[SourceSpan] = None) -> ScriptError:
    """E403: Too much recursion."""
    return _runtime("E403", "RangeError",
                    f"maximum call stack size exceeded (limit {limit})", span)


def error_uncaught(value_text: str, thrown: Any, span: Optional[SourceSpan] = None,
                   source_line: str = None) -> ScriptError:
    """E404: Value thrown by a throw statement and never caught."""
    err = _runtime("E404", "Error", value_text, span, source_line)
    err.thrown = thrown
    err.is_throw = True
    return err


def error_kernel(function: str, message: str, span: Optional[SourceSpan] = None,
                 source_line: str = None) -> ScriptError:
    """E405: A geometry kernel call rejected its arguments or failed."""
    if not message.startswith(f"{function}:"):
        message = f"{function}: {message}"
    return _runtime("E405", "Error", message, span, source_line)


def error_module_not_found(name: str, span: Optional[SourceSpan] = None) -> ScriptError:
    """E406: require() of anything but the geometry kernel."""
    return _runtime("E406", "Error", f"Cannot find module '{name}'", span,
                    hints=["only require('@jscad/modeling') is available"])


def error_redeclared(name: str, span: Optional[SourceSpan] = None) -> ScriptError:
    """E407: let/const name declared twice in one scope."""
    return _runtime("E407", "SyntaxError", f"Identifier '{name}' has already been declared", span)


def error_illegal_jump(keyword: str, span: Optional[SourceSpan] = None) -> ScriptError:
    """E408: break/continue outside of a loop."""
    return _runtime("E408", "SyntaxError", f"Illegal {keyword} statement", span)


def error_range(message: str, span: Optional[SourceSpan] = None) -> ScriptError:
    """E409: A value outside the allowed range, such as an array length."""
    return _runtime("E409", "RangeError", message, span)


__all__ = [
    "ErrorSeverity",
    "Diagnostic",
    "DslError",
    "LexerError",
    "ParserError",
    "ScriptError",
    "error_not_defined",
    "error_type",
    "error_call_stack",
    "error_uncaught",
    "error_kernel",
    "error_module_not_found",
    "error_redeclared",
    "error_illegal_jump",
    "error_range",
]
