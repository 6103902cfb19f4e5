"""
Recursive descent parser for the MORPHOS script language.

Converts a token stream into an Abstract Syntax Tree (AST). Semicolons are
optional where JavaScript's automatic semicolon insertion would supply them:
before a closing brace, at end of file, or across a line break.
"""

from typing import List, Optional, Union
from .tokens import (
    Token, TokenType, SourceSpan, KEYWORDS,
    is_unsupported_keyword, get_unsupported_suggestion,
)
from .ast import (
    # Expressions
    Expression, Literal, Identifier, SpreadElement, ArrayLiteral, Property,
    ObjectLiteral, FunctionExpr, Call, NewExpr, MemberAccess, IndexAccess, UnaryOp,
    UpdateExpr, BinaryOp, LogicalOp, ConditionalExpr, Assignment,
    OptionalChain, SequenceExpr,
    # Patterns
    Pattern, NamePattern, PatternProperty, ObjectPattern, PatternElement,
    ArrayPattern, Parameter,
    # Statements
    Statement, VarDeclarator, VarDecl, FunctionDecl, ReturnStatement,
    IfStatement, ForStatement, ForOfStatement, ForInStatement, WhileStatement,
    DoWhileStatement, BreakStatement, ContinueStatement, ThrowStatement,
    TryStatement, ExpressionStatement, EmptyStatement, Block,
    Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_expression,
    error_unsupported_syntax,
    error_invalid_assignment_target,
    error_missing_initializer,
)


_ASSIGNMENT_OPERATORS = {
    TokenType.ASSIGN,
    TokenType.PLUS_ASSIGN,
    TokenType.MINUS_ASSIGN,
    TokenType.STAR_ASSIGN,
    TokenType.SLASH_ASSIGN,
    TokenType.PERCENT_ASSIGN,
    TokenType.POWER_ASSIGN,
}

_LOGICAL_OPERATORS = {TokenType.AND, TokenType.OR, TokenType.NULLISH}

_LITERAL_TOKENS = {
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.TRUE,
    TokenType.FALSE,
    TokenType.NULL,
    TokenType.UNDEFINED,
}

_LITERAL_VALUES = {
    TokenType.TRUE: True,
    TokenType.FALSE: False,
    TokenType.NULL: None,
}

_KEYWORD_TYPES = set(KEYWORDS.values())


class Parser:
    """
    Recursive descent parser for design programs.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  || ??
                 &&
                 == != === !==
                 < > <= >=
                 + -
                 * / %
        Highest: ** (power, right-associative)
                 unary (! - + typeof ++ --)
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.NULLISH: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.STRICT_EQ: 3,
        TokenType.STRICT_NE: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LE: 4,
        TokenType.GE: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
        TokenType.PERCENT: 6,
        TokenType.DOUBLE_STAR: 7,  # Power (right-associative)
    }

    # Right-associative operators
    RIGHT_ASSOCIATIVE = {TokenType.DOUBLE_STAR}

    def __init__(self, tokens: List[Token], filename: Optional[str] = None,
                 source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source
        self.pos = 0
        self._source_lines = source.splitlines() if source else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _check_contextual(self, word: str) -> bool:
        """Check for a contextual keyword such as 'of'."""
        token = self._current()
        return token.type == TokenType.IDENTIFIER and token.value == word

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _consume_semicolon(self) -> None:
        """End a statement, applying automatic semicolon insertion."""
        if self._match(TokenType.SEMICOLON):
            return
        token = self._current()
        if token.type in (TokenType.RBRACE, TokenType.EOF) or token.newline_before:
            return
        self._error("';'")

    def _source_line(self, line: int) -> Optional[str]:
        if 1 <= line <= len(self._source_lines):
            return self._source_lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        if is_unsupported_keyword(token.type):
            self._unsupported(token)
        found = f"'{token.lexeme}'" if token.lexeme else token.type.name
        raise error_unexpected_token(expected, found, token.span,
                                     self._source_line(token.span.start.line))

    def _unsupported(self, token: Token, what: Optional[str] = None) -> None:
        raise error_unsupported_syntax(
            what or token.lexeme, token.span,
            self._source_line(token.span.start.line),
            get_unsupported_suggestion(token.type),
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to current position."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    def _property_name(self) -> str:
        """Consume a property name; keywords are valid after '.' and as object keys."""
        token = self._current()
        if token.type == TokenType.IDENTIFIER or token.type in _KEYWORD_TYPES:
            self._advance()
            return token.lexeme
        self._error("property name")

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse a full expression, including the comma operator."""
        start = self._current()
        expr = self._parse_assignment()
        if not self._check(TokenType.COMMA):
            return expr
        expressions = [expr]
        while self._match(TokenType.COMMA):
            expressions.append(self._parse_assignment())
        return SequenceExpr(span=self._span_from(start), expressions=expressions)

    def _parse_assignment(self) -> Expression:
        """Parse an assignment, arrow function, or conditional expression."""
        if self._check(TokenType.ASYNC):
            self._unsupported(self._current(), "async")
        if self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.ARROW:
            return self._parse_arrow_function()
        if self._check(TokenType.LPAREN) and self._is_arrow_ahead():
            return self._parse_arrow_function()

        start = self._current()
        left = self._parse_conditional()

        if self._check_any(*_ASSIGNMENT_OPERATORS):
            if not isinstance(left, (Identifier, MemberAccess, IndexAccess)):
                raise error_invalid_assignment_target(
                    left.span, self._source_line(left.span.start.line))
            op = self._advance()
            value = self._parse_assignment()  # right-associative
            return Assignment(span=self._span_from(start), target=left,
                              operator=op.type, value=value)

        return left

    def _is_arrow_ahead(self) -> bool:
        """Check whether the parenthesis at the cursor opens an arrow parameter list."""
        depth = 0
        idx = self.pos
        while idx < len(self.tokens):
            token = self.tokens[idx]
            if token.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE):
                depth += 1
            elif token.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE):
                depth -= 1
                if depth == 0:
                    following = self.tokens[idx + 1] if idx + 1 < len(self.tokens) else token
                    return following.type == TokenType.ARROW and not following.newline_before
            elif token.type == TokenType.EOF:
                return False
            idx += 1
        return False

    def _parse_arrow_function(self) -> FunctionExpr:
        start = self._current()
        if self._check(TokenType.IDENTIFIER):
            name_token = self._advance()
            params = [Parameter(span=name_token.span,
                                target=NamePattern(span=name_token.span, name=name_token.value))]
        else:
            params = self._parse_parameters()
        self._consume(TokenType.ARROW, "'=>'")

        if self._check(TokenType.LBRACE):
            body = self._parse_block()
        else:
            body = self._parse_assignment()
        return FunctionExpr(span=self._span_from(start), name=None, params=params,
                            body=body, is_arrow=True)

    def _parse_conditional(self) -> Expression:
        """Parse ``test ? a : b``."""
        start = self._current()
        condition = self._parse_binary_expr(1)
        if not self._match(TokenType.QUESTION):
            return condition
        true_branch = self._parse_assignment()
        self._consume(TokenType.COLON, "':'")
        false_branch = self._parse_assignment()
        return ConditionalExpr(span=self._span_from(start), condition=condition,
                               true_branch=true_branch, false_branch=false_branch)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator

            # Right-associative operators use same precedence, others use precedence + 1
            next_precedence = precedence if op_token.type in self.RIGHT_ASSOCIATIVE else precedence + 1
            right = self._parse_binary_expr(next_precedence)

            node_type = LogicalOp if op_token.type in _LOGICAL_OPERATORS else BinaryOp
            left = node_type(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (! - + typeof ++ --)."""
        if self._check_any(TokenType.NOT, TokenType.MINUS, TokenType.PLUS, TokenType.TYPEOF):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        if self._check_any(TokenType.PLUS_PLUS, TokenType.MINUS_MINUS):
            op = self._advance()
            target = self._parse_unary_expr()
            self._check_update_target(target)
            return UpdateExpr(span=SourceSpan(op.span.start, target.span.end),
                              operator=op.type, target=target, prefix=True)

        if self._check_any(TokenType.DELETE, TokenType.AWAIT):
            self._unsupported(self._current())

        if self._check(TokenType.NEW):
            return self._parse_new_expr()

        return self._parse_postfix_expr()

    def _parse_new_expr(self) -> NewExpr:
        """Parse ``new Name(args)``; the argument list is optional."""
        start = self._consume(TokenType.NEW, "'new'")
        token = self._current()
        callee: Expression = Identifier(span=token.span,
                                        name=self._consume(TokenType.IDENTIFIER, "constructor name").value)
        while self._match(TokenType.DOT):
            member = self._property_name()
            callee = MemberAccess(span=self._span_from(token), object=callee, member=member)
        args = self._parse_arguments() if self._check(TokenType.LPAREN) else []
        return NewExpr(span=self._span_from(start), callee=callee, arguments=args)

    def _check_update_target(self, target: Expression) -> None:
        if not isinstance(target, (Identifier, MemberAccess, IndexAccess)):
            raise error_invalid_assignment_target(
                target.span, self._source_line(target.span.start.line))

    def _parse_postfix_expr(self) -> Expression:
        """Parse postfix ``++``/``--`` after a call/member chain."""
        expr = self._parse_call_member_expr()
        token = self._current()
        if token.type in (TokenType.PLUS_PLUS, TokenType.MINUS_MINUS) and not token.newline_before:
            self._check_update_target(expr)
            self._advance()
            return UpdateExpr(span=SourceSpan(expr.span.start, token.span.end),
                              operator=token.type, target=expr, prefix=False)
        return expr

    def _parse_call_member_expr(self) -> Expression:
        """Parse calls, member access, indexing and optional chaining."""
        start = self._current()
        expr = self._parse_primary_expr()
        has_optional = False

        while True:
            if self._check(TokenType.LPAREN):
                args = self._parse_arguments()
                expr = Call(span=self._span_from(start), callee=expr, arguments=args)
            elif self._match(TokenType.DOT):
                member = self._property_name()
                expr = MemberAccess(span=self._span_from(start), object=expr, member=member)
            elif self._check(TokenType.LBRACKET):
                self._advance()  # consume '['
                index = self._parse_expression()
                self._consume(TokenType.RBRACKET, "']'")
                expr = IndexAccess(span=self._span_from(start), object=expr, index=index)
            elif self._match(TokenType.OPTIONAL_DOT):
                has_optional = True
                if self._check(TokenType.LPAREN):
                    args = self._parse_arguments()
                    expr = Call(span=self._span_from(start), callee=expr,
                                arguments=args, optional=True)
                elif self._match(TokenType.LBRACKET):
                    index = self._parse_expression()
                    self._consume(TokenType.RBRACKET, "']'")
                    expr = IndexAccess(span=self._span_from(start), object=expr,
                                       index=index, optional=True)
                else:
                    member = self._property_name()
                    expr = MemberAccess(span=self._span_from(start), object=expr,
                                        member=member, optional=True)
            else:
                break

        if has_optional:
            return OptionalChain(span=expr.span, expression=expr)
        return expr

    def _parse_arguments(self) -> List[Expression]:
        """Parse an argument list, including spread arguments."""
        self._consume(TokenType.LPAREN, "'('")
        args: List[Expression] = []
        while not self._check(TokenType.RPAREN):
            args.append(self._parse_element())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "')'")
        return args

    def _parse_element(self) -> Expression:
        """Parse one array element or argument, which may be a spread."""
        spread = self._match(TokenType.ELLIPSIS)
        if spread:
            argument = self._parse_assignment()
            return SpreadElement(span=self._span_from(spread), argument=argument)
        return self._parse_assignment()

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, names, groups, literals, functions)."""
        token = self._current()

        if token.type in _LITERAL_TOKENS:
            self._advance()
            if token.type in (TokenType.NUMBER, TokenType.STRING):
                value = token.value
            else:
                value = _LITERAL_VALUES.get(token.type)
            return Literal(span=token.span, value=value, literal_type=token.type)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.LBRACKET:
            return self._parse_array_literal()

        if token.type == TokenType.LBRACE:
            return self._parse_object_literal()

        if token.type == TokenType.FUNCTION:
            return self._parse_function_expr()

        if is_unsupported_keyword(token.type):
            self._unsupported(token)

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("expression", token.span)
        raise error_invalid_expression(token.span, self._source_line(token.span.start.line))

    def _parse_array_literal(self) -> ArrayLiteral:
        start = self._consume(TokenType.LBRACKET, "'['")
        elements: List[Optional[Expression]] = []
        while not self._check(TokenType.RBRACKET):
            if self._check(TokenType.COMMA):
                self._advance()
                elements.append(None)  # hole
                continue
            elements.append(self._parse_element())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RBRACKET, "']'")
        return ArrayLiteral(span=self._span_from(start), elements=elements)

    def _parse_object_literal(self) -> ObjectLiteral:
        start = self._consume(TokenType.LBRACE, "'{'")
        properties: List[Property] = []
        while not self._check(TokenType.RBRACE):
            properties.append(self._parse_property())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RBRACE, "'}'")
        return ObjectLiteral(span=self._span_from(start), properties=properties)

    def _parse_property(self) -> Property:
        start = self._current()

        if self._match(TokenType.ELLIPSIS):
            argument = self._parse_assignment()
            return Property(span=self._span_from(start), key=None, value=argument, is_spread=True)

        computed_key = None
        key = None
        if self._match(TokenType.LBRACKET):
            computed_key = self._parse_assignment()
            self._consume(TokenType.RBRACKET, "']'")
        elif self._check(TokenType.STRING):
            key = self._advance().value
        elif self._check(TokenType.NUMBER):
            key = _number_key(self._advance().value)
        else:
            key = self._property_name()

        if self._match(TokenType.COLON):
            value = self._parse_assignment()
        elif self._check(TokenType.LPAREN):
            # Method shorthand: { name(args) { ... } }
            params = self._parse_parameters()
            body = self._parse_block()
            value = FunctionExpr(span=self._span_from(start), name=key, params=params, body=body)
        elif start.type == TokenType.IDENTIFIER and computed_key is None:
            value = Identifier(span=start.span, name=key)
        else:
            self._error("':'")

        return Property(span=self._span_from(start), key=key, value=value,
                        computed_key=computed_key)

    def _parse_function_expr(self) -> FunctionExpr:
        start = self._consume(TokenType.FUNCTION, "'function'")
        if self._check(TokenType.STAR):
            self._unsupported(self._current(), "generator function")
        name = None
        if self._check(TokenType.IDENTIFIER):
            name = self._advance().value
        params = self._parse_parameters()
        body = self._parse_block()
        return FunctionExpr(span=self._span_from(start), name=name, params=params, body=body)

    # =========================================================================
    # Patterns and Parameters
    # =========================================================================

    def _parse_binding_target(self) -> Pattern:
        """Parse a name, object pattern or array pattern."""
        token = self._current()
        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return NamePattern(span=token.span, name=token.value)
        if token.type == TokenType.LBRACE:
            return self._parse_object_pattern()
        if token.type == TokenType.LBRACKET:
            return self._parse_array_pattern()
        self._error("identifier or destructuring pattern")

    def _parse_object_pattern(self) -> ObjectPattern:
        start = self._consume(TokenType.LBRACE, "'{'")
        properties: List[PatternProperty] = []
        rest = None
        while not self._check(TokenType.RBRACE):
            if self._match(TokenType.ELLIPSIS):
                rest = self._consume(TokenType.IDENTIFIER, "identifier").value
                break
            prop_start = self._current()
            if self._check(TokenType.STRING):
                key = self._advance().value
            else:
                key = self._property_name()
            if self._match(TokenType.COLON):
                target = self._parse_binding_target()
            elif prop_start.type == TokenType.IDENTIFIER:
                target = NamePattern(span=prop_start.span, name=key)
            else:
                self._error("':'")
            default = None
            if self._match(TokenType.ASSIGN):
                default = self._parse_assignment()
            properties.append(PatternProperty(span=self._span_from(prop_start), key=key,
                                              target=target, default=default))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RBRACE, "'}'")
        return ObjectPattern(span=self._span_from(start), properties=properties, rest=rest)

    def _parse_array_pattern(self) -> ArrayPattern:
        start = self._consume(TokenType.LBRACKET, "'['")
        elements: List[Optional[PatternElement]] = []
        rest = None
        while not self._check(TokenType.RBRACKET):
            if self._match(TokenType.COMMA):
                elements.append(None)
                continue
            if self._match(TokenType.ELLIPSIS):
                rest = self._parse_binding_target()
                break
            elem_start = self._current()
            target = self._parse_binding_target()
            default = None
            if self._match(TokenType.ASSIGN):
                default = self._parse_assignment()
            elements.append(PatternElement(span=self._span_from(elem_start),
                                           target=target, default=default))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RBRACKET, "']'")
        return ArrayPattern(span=self._span_from(start), elements=elements, rest=rest)

    def _parse_parameters(self) -> List[Parameter]:
        """Parse a parenthesised parameter list."""
        self._consume(TokenType.LPAREN, "'('")
        params: List[Parameter] = []
        while not self._check(TokenType.RPAREN):
            start = self._current()
            if self._match(TokenType.ELLIPSIS):
                target = self._parse_binding_target()
                params.append(Parameter(span=self._span_from(start), target=target, is_rest=True))
                break
            target = self._parse_binding_target()
            default = None
            if self._match(TokenType.ASSIGN):
                default = self._parse_assignment()
            params.append(Parameter(span=self._span_from(start), target=target, default=default))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN, "')'")
        return params

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        token = self._current()
        tt = token.type

        if tt == TokenType.LBRACE:
            return self._parse_block()
        if tt in (TokenType.CONST, TokenType.LET, TokenType.VAR):
            decl = self._parse_var_decl()
            self._consume_semicolon()
            return decl
        if tt == TokenType.FUNCTION and self._peek(1).type == TokenType.IDENTIFIER:
            return self._parse_function_decl()
        if tt == TokenType.RETURN:
            return self._parse_return_statement()
        if tt == TokenType.IF:
            return self._parse_if_statement()
        if tt == TokenType.FOR:
            return self._parse_for_statement()
        if tt == TokenType.WHILE:
            return self._parse_while_statement()
        if tt == TokenType.DO:
            return self._parse_do_while_statement()
        if tt in (TokenType.BREAK, TokenType.CONTINUE):
            self._advance()
            if self._check(TokenType.IDENTIFIER) and not self._current().newline_before:
                self._unsupported(self._current(), "labelled break/continue")
            self._consume_semicolon()
            node_type = BreakStatement if tt == TokenType.BREAK else ContinueStatement
            return node_type(span=token.span)
        if tt == TokenType.THROW:
            self._advance()
            argument = self._parse_expression()
            self._consume_semicolon()
            return ThrowStatement(span=self._span_from(token), argument=argument)
        if tt == TokenType.TRY:
            return self._parse_try_statement()
        if tt == TokenType.SEMICOLON:
            self._advance()
            return EmptyStatement(span=token.span)
        if is_unsupported_keyword(tt):
            self._unsupported(token)

        expr = self._parse_expression()
        self._consume_semicolon()
        return ExpressionStatement(span=self._span_from(token), expression=expr)

    def _parse_block(self) -> Block:
        """Parse a brace-delimited block."""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements = []
        while not self._check(TokenType.RBRACE):
            if self._is_at_end():
                self._error("'}'")
            statements.append(self._parse_statement())
        self._consume(TokenType.RBRACE, "'}'")
        return Block(span=self._span_from(start), statements=statements)

    def _parse_var_decl(self, in_for_header: bool = False) -> VarDecl:
        """Parse ``const/let/var a = 1, {b} = obj``."""
        start = self._advance()
        declarations = []
        while True:
            decl_start = self._current()
            target = self._parse_binding_target()
            init = None
            if self._match(TokenType.ASSIGN):
                init = self._parse_assignment()
            elif start.type == TokenType.CONST and not in_for_header:
                name = target.name if isinstance(target, NamePattern) else "pattern"
                raise error_missing_initializer(name, target.span,
                                                self._source_line(target.span.start.line))
            declarations.append(VarDeclarator(span=self._span_from(decl_start),
                                              target=target, init=init))
            if not self._match(TokenType.COMMA):
                break
        return VarDecl(span=self._span_from(start), kind=start.lexeme, declarations=declarations)

    def _parse_function_decl(self) -> FunctionDecl:
        start = self._current()
        function = self._parse_function_expr()
        return FunctionDecl(span=self._span_from(start), name=function.name, function=function)

    def _parse_return_statement(self) -> ReturnStatement:
        start = self._consume(TokenType.RETURN, "'return'")
        value = None
        token = self._current()
        if not (token.type in (TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF)
                or token.newline_before):
            value = self._parse_expression()
        self._consume_semicolon()
        return ReturnStatement(span=self._span_from(start), value=value)

    def _parse_if_statement(self) -> IfStatement:
        start = self._consume(TokenType.IF, "'if'")
        self._consume(TokenType.LPAREN, "'('")
        condition = self._parse_expression()
        self._consume(TokenType.RPAREN, "')'")
        then_branch = self._parse_statement()
        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_statement()
        return IfStatement(span=self._span_from(start), condition=condition,
                           then_branch=then_branch, else_branch=else_branch)

    def _parse_for_statement(self) -> Statement:
        start = self._consume(TokenType.FOR, "'for'")
        if self._check(TokenType.AWAIT):
            self._unsupported(self._current(), "for await")
        self._consume(TokenType.LPAREN, "'('")

        init: Optional[Union[VarDecl, Expression]] = None
        if self._check_any(TokenType.CONST, TokenType.LET, TokenType.VAR):
            kind_token = self._current()
            save = self.pos
            self._advance()
            target = self._parse_binding_target()
            if self._check_contextual("of") or self._check(TokenType.IN):
                return self._finish_for_each(start, kind_token.lexeme, target)
            self.pos = save
            init = self._parse_var_decl(in_for_header=True)
        elif not self._check(TokenType.SEMICOLON):
            if (self._check(TokenType.IDENTIFIER)
                    and (self._peek(1).type == TokenType.IN
                         or (self._peek(1).type == TokenType.IDENTIFIER and self._peek(1).value == "of"))):
                name_token = self._advance()
                target = Identifier(span=name_token.span, name=name_token.value)
                return self._finish_for_each(start, None, target)
            init = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")

        test = None
        if not self._check(TokenType.SEMICOLON):
            test = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")

        update = None
        if not self._check(TokenType.RPAREN):
            update = self._parse_expression()
        self._consume(TokenType.RPAREN, "')'")

        body = self._parse_statement()
        return ForStatement(span=self._span_from(start), init=init, test=test,
                            update=update, body=body)

    def _finish_for_each(self, start: Token, kind: Optional[str], target) -> Statement:
        is_of = self._check_contextual("of")
        self._advance()  # consume 'of' / 'in'
        source = self._parse_assignment() if is_of else self._parse_expression()
        self._consume(TokenType.RPAREN, "')'")
        body = self._parse_statement()
        if is_of:
            return ForOfStatement(span=self._span_from(start), kind=kind, target=target,
                                  iterable=source, body=body)
        return ForInStatement(span=self._span_from(start), kind=kind, target=target,
                              object=source, body=body)

    def _parse_while_statement(self) -> WhileStatement:
        start = self._consume(TokenType.WHILE, "'while'")
        self._consume(TokenType.LPAREN, "'('")
        condition = self._parse_expression()
        self._consume(TokenType.RPAREN, "')'")
        body = self._parse_statement()
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_do_while_statement(self) -> DoWhileStatement:
        start = self._consume(TokenType.DO, "'do'")
        body = self._parse_statement()
        self._consume(TokenType.WHILE, "'while'")
        self._consume(TokenType.LPAREN, "'('")
        condition = self._parse_expression()
        self._consume(TokenType.RPAREN, "')'")
        self._match(TokenType.SEMICOLON)
        return DoWhileStatement(span=self._span_from(start), body=body, condition=condition)

    def _parse_try_statement(self) -> TryStatement:
        start = self._consume(TokenType.TRY, "'try'")
        block = self._parse_block()
        param = None
        handler = None
        finalizer = None
        if self._match(TokenType.CATCH):
            if self._match(TokenType.LPAREN):
                param = self._parse_binding_target()
                self._consume(TokenType.RPAREN, "')'")
            handler = self._parse_block()
        if self._match(TokenType.FINALLY):
            finalizer = self._parse_block()
        if handler is None and finalizer is None:
            self._error("'catch' or 'finally'")
        return TryStatement(span=self._span_from(start), block=block, param=param,
                            handler=handler, finalizer=finalizer)

    # =========================================================================
    # Program
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse a complete program."""
        start = self._current()
        body = []
        while not self._is_at_end():
            body.append(self._parse_statement())
        return Program(span=self._span_from(start), body=body)


def _number_key(value) -> str:
    """Object keys written as numbers become their JavaScript string form."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse(tokens: List[Token], filename: Optional[str] = None,
          source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a Program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional source text, used to quote lines in diagnostics

    Returns:
        Program AST node

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()
