"""
MORPHOS script language.

Design programs are written in a JSCAD-compatible subset of JavaScript. This
module provides:
- Lexer: Tokenizes program text
- Parser: Builds an AST from tokens
- Runtime: Executes the AST in a closed, budgeted interpreter

Usage:
    from morphos.dsl import tokenize, parse

    source = '''
    const { primitives } = require('@jscad/modeling')
    function main() {
        return primitives.cuboid({ size: [10, 10, 10] })
    }
    '''
    program = parse(tokenize(source), source=source)
    assert program.declares("main")
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    Expression,
    Statement,
    Pattern,
    FunctionDecl,
    VarDecl,
    Program,
)

from .errors import (
    ErrorSeverity,
    Diagnostic,
    DslError,
    LexerError,
    ParserError,
    ScriptError,
)


def parse_source(source: str, filename: str = None) -> Program:
    """Tokenize and parse program text in one step."""
    return parse(tokenize(source, filename), filename=filename, source=source)


__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    # Lexer
    "Lexer",
    "tokenize",
    # Parser
    "Parser",
    "parse",
    "parse_source",
    # AST
    "AstNode",
    "Expression",
    "Statement",
    "Pattern",
    "FunctionDecl",
    "VarDecl",
    "Program",
    # Errors
    "ErrorSeverity",
    "Diagnostic",
    "DslError",
    "LexerError",
    "ParserError",
    "ScriptError",
]
