"""
Abstract Syntax Tree (AST) node definitions for the MORPHOS script language.

The AST represents the structure of a parsed design program, which is then
run by the tree-walking interpreter in ``morphos.dsl.runtime``.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Union, Any
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value: number, string, true, false, null or undefined."""
    value: Any
    literal_type: TokenType  # NUMBER, STRING, TRUE, FALSE, NULL, UNDEFINED


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str


@dataclass
class SpreadElement(Expression):
    """``...expr`` inside an array literal, object literal or argument list."""
    argument: Expression


@dataclass
class ArrayLiteral(Expression):
    """An array literal (e.g., [1, 2, ...rest]). Holes are stored as None."""
    elements: List[Optional[Expression]]


@dataclass
class Property(AstNode):
    """A single entry of an object literal.

    Either ``key`` (a plain name) or ``computed_key`` (``[expr]: value``) is
    set; a spread entry carries its argument in ``value`` with ``is_spread``.
    """
    key: Optional[str]
    value: Expression
    computed_key: Optional[Expression] = None
    is_spread: bool = False


@dataclass
class ObjectLiteral(Expression):
    """An object literal (e.g., { size: [1, 2, 3], center })."""
    properties: List[Property]


@dataclass
class FunctionExpr(Expression):
    """A function expression, arrow function or the body of a declaration.

    For expression-bodied arrows ``body`` is an Expression; otherwise it is a
    Block.
    """
    name: Optional[str]
    params: List["Parameter"]
    body: Union["Block", Expression]
    is_arrow: bool = False


@dataclass
class Call(Expression):
    """A call (e.g., cuboid({ size: 3 }) or arr.map(f))."""
    callee: Expression
    arguments: List[Expression]
    optional: bool = False  # f?.()


@dataclass
class NewExpr(Expression):
    """``new Callee(args)``; only built-in constructors accept it."""
    callee: Expression
    arguments: List[Expression]


@dataclass
class MemberAccess(Expression):
    """Member access (e.g., primitives.cuboid or obj?.x)."""
    object: Expression
    member: str
    optional: bool = False


@dataclass
class IndexAccess(Expression):
    """Index access (e.g., points[0] or obj['key'])."""
    object: Expression
    index: Expression
    optional: bool = False


@dataclass
class UnaryOp(Expression):
    """A unary operation (-x, +x, !x, typeof x)."""
    operator: TokenType
    operand: Expression


@dataclass
class UpdateExpr(Expression):
    """``++``/``--`` in prefix or postfix position."""
    operator: TokenType
    target: Expression
    prefix: bool


@dataclass
class BinaryOp(Expression):
    """An arithmetic or comparison operation (e.g., a + b, a === b)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class LogicalOp(Expression):
    """A short-circuit operation (&&, ||, ??)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class ConditionalExpr(Expression):
    """A ternary conditional (e.g., cond ? a : b)."""
    condition: Expression
    true_branch: Expression
    false_branch: Expression


@dataclass
class Assignment(Expression):
    """An assignment or compound assignment (=, +=, -=, ...)."""
    target: Union[Expression, "Pattern"]
    operator: TokenType
    value: Expression


@dataclass
class OptionalChain(Expression):
    """Wraps a member/call chain containing ``?.``.

    When an optional link meets null or undefined the whole chain evaluates to
    undefined.
    """
    expression: Expression


@dataclass
class SequenceExpr(Expression):
    """Comma-separated expressions; evaluates to the last one."""
    expressions: List[Expression]


# =============================================================================
# Binding Patterns
# =============================================================================

@dataclass
class Pattern(AstNode):
    """Base class for declaration and parameter binding targets."""
    pass


@dataclass
class NamePattern(Pattern):
    """Binds a single name."""
    name: str


@dataclass
class PatternProperty(AstNode):
    """``key: target = default`` inside an object pattern."""
    key: str
    target: Pattern
    default: Optional[Expression] = None


@dataclass
class ObjectPattern(Pattern):
    """``{ a, b: c, d = 1, ...rest }``."""
    properties: List[PatternProperty]
    rest: Optional[str] = None


@dataclass
class PatternElement(AstNode):
    """``target = default`` inside an array pattern."""
    target: Pattern
    default: Optional[Expression] = None


@dataclass
class ArrayPattern(Pattern):
    """``[a, , b = 2, ...rest]``. Holes are stored as None."""
    elements: List[Optional[PatternElement]]
    rest: Optional[Pattern] = None


@dataclass
class Parameter(AstNode):
    """A function parameter."""
    target: Pattern
    default: Optional[Expression] = None
    is_rest: bool = False


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class VarDeclarator(AstNode):
    """One ``target = init`` entry of a declaration."""
    target: Pattern
    init: Optional[Expression] = None


@dataclass
class VarDecl(Statement):
    """``const``/``let``/``var`` declaration."""
    kind: str  # 'const', 'let' or 'var'
    declarations: List[VarDeclarator]


@dataclass
class FunctionDecl(Statement):
    """``function name(params) { body }``; hoisted to the top of its scope."""
    name: str
    function: FunctionExpr


@dataclass
class ReturnStatement(Statement):
    value: Optional[Expression] = None


@dataclass
class IfStatement(Statement):
    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement] = None


@dataclass
class ForStatement(Statement):
    """Classic ``for (init; test; update) body``."""
    init: Optional[Union[VarDecl, Expression]]
    test: Optional[Expression]
    update: Optional[Expression]
    body: Statement


@dataclass
class ForOfStatement(Statement):
    """``for (const x of iterable) body``."""
    kind: Optional[str]  # declaration keyword, or None for a bare target
    target: Union[Pattern, Expression]
    iterable: Expression
    body: Statement


@dataclass
class ForInStatement(Statement):
    """``for (const key in object) body``."""
    kind: Optional[str]
    target: Union[Pattern, Expression]
    object: Expression
    body: Statement


@dataclass
class WhileStatement(Statement):
    condition: Expression
    body: Statement


@dataclass
class DoWhileStatement(Statement):
    body: Statement
    condition: Expression


@dataclass
class BreakStatement(Statement):
    pass


@dataclass
class ContinueStatement(Statement):
    pass


@dataclass
class ThrowStatement(Statement):
    argument: Expression


@dataclass
class TryStatement(Statement):
    """``try {} catch (e) {} finally {}``; at least one handler is present."""
    block: "Block"
    param: Optional[Pattern] = None
    handler: Optional["Block"] = None
    finalizer: Optional["Block"] = None


@dataclass
class ExpressionStatement(Statement):
    expression: Expression


@dataclass
class EmptyStatement(Statement):
    pass


@dataclass
class Block(Statement):
    """A brace-delimited block of statements."""
    statements: List[Statement] = field(default_factory=list)


# =============================================================================
# Program
# =============================================================================

@dataclass
class Program(AstNode):
    """A complete design program."""
    body: List[Statement] = field(default_factory=list)

    def top_level_names(self) -> List[str]:
        """Names declared directly at program level (functions and variables)."""
        names = []
        for stmt in self.body:
            if isinstance(stmt, FunctionDecl):
                names.append(stmt.name)
            elif isinstance(stmt, VarDecl):
                for decl in stmt.declarations:
                    names.extend(pattern_names(decl.target))
        return names

    def declares(self, name: str) -> bool:
        return name in self.top_level_names()


def pattern_names(pattern: Pattern) -> List[str]:
    """All names bound by a pattern, in source order."""
    if isinstance(pattern, NamePattern):
        return [pattern.name]
    names = []
    if isinstance(pattern, ObjectPattern):
        for prop in pattern.properties:
            names.extend(pattern_names(prop.target))
        if pattern.rest:
            names.append(pattern.rest)
    elif isinstance(pattern, ArrayPattern):
        for element in pattern.elements:
            if element is not None:
                names.extend(pattern_names(element.target))
        if pattern.rest is not None:
            names.extend(pattern_names(pattern.rest))
    return names
