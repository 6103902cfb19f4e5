"""
Token types for the MORPHOS script lexer.

The script language is the JavaScript subset that JSCAD design programs are
written in. Token type categories follow the diagnostic code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the script lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.14, 1e-9, 0xff, .5
    STRING = auto()             # 'hello', "hello", `hello`
    TRUE = auto()               # true
    FALSE = auto()              # false
    NULL = auto()               # null
    UNDEFINED = auto()          # undefined

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords ---
    CONST = auto()              # const
    LET = auto()                # let
    VAR = auto()                # var
    FUNCTION = auto()           # function
    RETURN = auto()             # return
    IF = auto()                 # if
    ELSE = auto()               # else
    FOR = auto()                # for
    IN = auto()                # in
    WHILE = auto()              # while
    DO = auto()                 # do
    BREAK = auto()              # break
    CONTINUE = auto()           # continue
    TYPEOF = auto()             # typeof
    THROW = auto()              # throw
    TRY = auto()                # try
    CATCH = auto()              # catch
    FINALLY = auto()            # finally
    NEW = auto()                # new (built-in constructors only)

    # --- Reserved words the runtime refuses to support ---
    CLASS = auto()              # class
    IMPORT = auto()             # import
    EXPORT = auto()             # export
    THIS = auto()               # this
    SWITCH = auto()             # switch
    ASYNC = auto()              # async
    AWAIT = auto()              # await
    YIELD = auto()              # yield
    WITH = auto()               # with
    DELETE = auto()             # delete
    INSTANCEOF = auto()         # instanceof

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %
    DOUBLE_STAR = auto()        # **
    PLUS_PLUS = auto()          # ++
    MINUS_MINUS = auto()        # --

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=
    STRICT_EQ = auto()          # ===
    STRICT_NE = auto()          # !==

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    NULLISH = auto()            # ??
    NOT = auto()                # !

    # --- Assignment ---
    ASSIGN = auto()             # =
    PLUS_ASSIGN = auto()        # +=
    MINUS_ASSIGN = auto()       # -=
    STAR_ASSIGN = auto()        # *=
    SLASH_ASSIGN = auto()       # /=
    PERCENT_ASSIGN = auto()     # %=
    POWER_ASSIGN = auto()       # **=

    # --- Delimiters ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COLON = auto()              # :
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,
    DOT = auto()                # .
    OPTIONAL_DOT = auto()       # ?.
    ELLIPSIS = auto()           # ...
    ARROW = auto()              # =>
    QUESTION = auto()           # ?

    # --- Special ---
    EOF = auto()                # end of file


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    ``newline_before`` records whether a line break separated this token from
    the previous one; the parser uses it to insert implicit semicolons.
    """
    type: TokenType
    value: Any              # The actual value (float, str, etc.)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source
    newline_before: bool = False

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type.
# 'of' is contextual in JavaScript, so it stays an identifier and the parser
# recognises it by lexeme inside for-statements.
KEYWORDS: dict[str, TokenType] = {
    "const": TokenType.CONST,
    "let": TokenType.LET,
    "var": TokenType.VAR,
    "function": TokenType.FUNCTION,
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "while": TokenType.WHILE,
    "do": TokenType.DO,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "typeof": TokenType.TYPEOF,
    "throw": TokenType.THROW,
    "try": TokenType.TRY,
    "catch": TokenType.CATCH,
    "finally": TokenType.FINALLY,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
    "undefined": TokenType.UNDEFINED,

    # Reserved, rejected by the parser with a helpful message
    "new": TokenType.NEW,
    "class": TokenType.CLASS,
    "import": TokenType.IMPORT,
    "export": TokenType.EXPORT,
    "this": TokenType.THIS,
    "switch": TokenType.SWITCH,
    "async": TokenType.ASYNC,
    "await": TokenType.AWAIT,
    "yield": TokenType.YIELD,
    "with": TokenType.WITH,
    "delete": TokenType.DELETE,
    "instanceof": TokenType.INSTANCEOF,
}


UNSUPPORTED_KEYWORDS: set[TokenType] = {
    TokenType.CLASS,
    TokenType.IMPORT,
    TokenType.EXPORT,
    TokenType.THIS,
    TokenType.SWITCH,
    TokenType.ASYNC,
    TokenType.AWAIT,
    TokenType.YIELD,
    TokenType.WITH,
    TokenType.DELETE,
    TokenType.INSTANCEOF,
}

# Suggestions shown alongside the "unsupported" diagnostic
UNSUPPORTED_SUGGESTIONS: dict[TokenType, str] = {
    TokenType.CLASS: "use plain functions and object literals",
    TokenType.IMPORT: "use const { primitives } = require('@jscad/modeling')",
    TokenType.EXPORT: "define function main() and return the geometry",
    TokenType.SWITCH: "use if / else if chains",
    TokenType.THIS: "pass values as function arguments",
}


def is_unsupported_keyword(token_type: TokenType) -> bool:
    """Check if a keyword is reserved but unsupported by the runtime."""
    return token_type in UNSUPPORTED_KEYWORDS


def get_unsupported_suggestion(token_type: TokenType) -> Optional[str]:
    """Get the suggestion for an unsupported keyword, if any."""
    return UNSUPPORTED_SUGGESTIONS.get(token_type)
