"""
Tree-walking interpreter for design programs.

Evaluates AST nodes by dispatching to type-specific methods. The only names a
program can see are those of its root scope (the CapabilitySet plus the
standard globals); member access is defined for script values only, so no
Python attribute of a host object is ever reachable.
"""

from typing import Any, List, Optional

from .values import (
    UNDEFINED, ScriptFunction, NativeFunction, Namespace,
    is_nullish, is_callable, is_truthy, type_of,
    to_number, to_string, to_display, to_property_key, array_index,
    add, subtract, multiply, divide, remainder, power, compare,
    strict_equals, loose_equals,
)
from .context import Scope
from .budget import BudgetMeter
from .builtins import get_builtin_registry, value_type_name, check_length

from ..ast import (
    Expression, Literal, Identifier, SpreadElement, ArrayLiteral,
    ObjectLiteral, FunctionExpr, Call, NewExpr, MemberAccess, IndexAccess, UnaryOp,
    UpdateExpr, BinaryOp, LogicalOp, ConditionalExpr, Assignment,
    OptionalChain, SequenceExpr,
    Pattern, NamePattern, ObjectPattern, ArrayPattern, Parameter,
    Statement, VarDecl, FunctionDecl, ReturnStatement, IfStatement,
    ForStatement, ForOfStatement, ForInStatement, WhileStatement,
    DoWhileStatement, BreakStatement, ContinueStatement, ThrowStatement,
    TryStatement, ExpressionStatement, EmptyStatement, Block, Program,
    pattern_names,
)
from ..errors import (
    ScriptError,
    error_type, error_call_stack, error_uncaught,
    error_kernel, error_illegal_jump,
)
from ..tokens import SourceSpan, TokenType


class _ReturnSignal(Exception):
    def __init__(self, value: Any):
        self.value = value


class _BreakSignal(Exception):
    pass


class _ContinueSignal(Exception):
    pass


class _ShortCircuit(Exception):
    """An optional link met null/undefined; the enclosing chain yields undefined."""


_ARITHMETIC = {
    TokenType.PLUS: add,
    TokenType.MINUS: subtract,
    TokenType.STAR: multiply,
    TokenType.SLASH: divide,
    TokenType.PERCENT: remainder,
    TokenType.DOUBLE_STAR: power,
}

_RELATIONAL = {
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
}

_COMPOUND = {
    TokenType.PLUS_ASSIGN: add,
    TokenType.MINUS_ASSIGN: subtract,
    TokenType.STAR_ASSIGN: multiply,
    TokenType.SLASH_ASSIGN: divide,
    TokenType.PERCENT_ASSIGN: remainder,
    TokenType.POWER_ASSIGN: power,
}

# Python exceptions a native function may raise for bad script arguments
_NATIVE_ERRORS = (ValueError, TypeError, ArithmeticError, IndexError, KeyError)


class Interpreter:
    """
    Tree-walking interpreter for design programs.

    Usage:
        interp = Interpreter(Scope.from_bindings(capabilities), meter, source)
        program_scope = interp.execute_program(program)
        result = interp.call_function(program_scope.get("main"), [])
    """

    def __init__(self, root: Scope, meter: BudgetMeter, source: str = ""):
        self.root = root
        self.meter = meter
        self.max_call_depth = meter.budget.max_call_depth
        self.depth = 0
        self.registry = get_builtin_registry()
        self._source_lines = source.splitlines()

    # =========================================================================
    # Public API
    # =========================================================================

    def execute_program(self, program: Program) -> Scope:
        """Run the top level of a program and return its scope."""
        scope = self.root.child("program", is_function=True)
        try:
            self._hoist_vars(program.body, scope)
            self._execute_statements(program.body, scope)
        except _ReturnSignal:
            pass  # a top-level return ends the program body
        except (_BreakSignal, _ContinueSignal) as signal:
            raise error_illegal_jump(_jump_keyword(signal), program.span)
        except ScriptError as err:
            self._annotate(err)
            raise
        return scope

    def call_function(self, fn: Any, args: List[Any], span: Optional[SourceSpan] = None) -> Any:
        """Call a script or native function with already-evaluated arguments."""
        self.meter.tick()
        if isinstance(fn, NativeFunction):
            return self._call_native(fn, args, span)
        if isinstance(fn, ScriptFunction):
            try:
                return self._call_script(fn, args, span)
            except ScriptError as err:
                self._annotate(err)
                raise
        raise error_type(f"{to_display(fn)} is not a function", span)

    # =========================================================================
    # Functions
    # =========================================================================

    def _call_native(self, fn: NativeFunction, args: List[Any], span: Optional[SourceSpan]) -> Any:
        try:
            if fn.needs_interpreter:
                return fn.implementation(self, *args)
            return fn.implementation(*args)
        except ScriptError as err:
            if err.diagnostic.span is None:
                err.diagnostic.span = span
            raise
        except _NATIVE_ERRORS as exc:
            raise error_kernel(fn.name, str(exc) or type(exc).__name__, span) from exc

    def _call_script(self, fn: ScriptFunction, args: List[Any], span: Optional[SourceSpan]) -> Any:
        if self.depth >= self.max_call_depth:
            raise error_call_stack(self.max_call_depth, span)
        call_scope = fn.closure.child(f"function {fn.name or '<anonymous>'}", is_function=True)
        self.depth += 1
        try:
            self._bind_parameters(fn.params, args, call_scope)
            if not isinstance(fn.body, Block):
                return self._evaluate(fn.body, call_scope)
            self._hoist_vars(fn.body.statements, call_scope)
            try:
                self._execute_statements(fn.body.statements, call_scope)
            except _ReturnSignal as ret:
                return ret.value
            return UNDEFINED
        except (_BreakSignal, _ContinueSignal) as signal:
            raise error_illegal_jump(_jump_keyword(signal), span)
        finally:
            self.depth -= 1

    def _bind_parameters(self, params: List[Parameter], args: List[Any], scope: Scope) -> None:
        for i, param in enumerate(params):
            if param.is_rest:
                value = list(args[i:])
            else:
                value = args[i] if i < len(args) else UNDEFINED
                if value is UNDEFINED and param.default is not None:
                    value = self._evaluate(param.default, scope)
            self._bind_pattern(param.target, value, scope, "param")

    def _make_function(self, node: FunctionExpr, scope: Scope) -> ScriptFunction:
        closure = scope
        if node.name and not node.is_arrow:
            # A named function expression can refer to itself by name
            closure = scope.child("named-function")
        fn = ScriptFunction(node.name, node.params, node.body, closure, node.is_arrow)
        if closure is not scope:
            closure.declare(node.name, fn, "const")
        return fn

    # =========================================================================
    # Statements
    # =========================================================================

    def _hoist_vars(self, statements: List[Statement], scope: Scope) -> None:
        """Declare every ``var`` name of a function body as undefined."""
        for stmt in statements:
            for name in _var_names(stmt):
                if name not in scope.variables:
                    scope.declare(name, UNDEFINED, "var")

    def _execute_statements(self, statements: List[Statement], scope: Scope) -> None:
        """Execute a statement list after hoisting its function declarations."""
        for stmt in statements:
            if isinstance(stmt, FunctionDecl):
                scope.declare(stmt.name, self._make_function(stmt.function, scope), "var", stmt.span)
        for stmt in statements:
            self._execute(stmt, scope)

    def _execute(self, stmt: Statement, scope: Scope) -> None:
        """Execute a statement."""
        self.meter.tick()
        if isinstance(stmt, ExpressionStatement):
            self._evaluate(stmt.expression, scope)
        elif isinstance(stmt, VarDecl):
            self._execute_var_decl(stmt, scope)
        elif isinstance(stmt, FunctionDecl):
            pass  # hoisted by _execute_statements
        elif isinstance(stmt, ReturnStatement):
            value = UNDEFINED if stmt.value is None else self._evaluate(stmt.value, scope)
            raise _ReturnSignal(value)
        elif isinstance(stmt, IfStatement):
            if is_truthy(self._evaluate(stmt.condition, scope)):
                self._execute_body(stmt.then_branch, scope)
            elif stmt.else_branch is not None:
                self._execute_body(stmt.else_branch, scope)
        elif isinstance(stmt, Block):
            self._execute_statements(stmt.statements, scope.child("block"))
        elif isinstance(stmt, ForStatement):
            self._execute_for(stmt, scope)
        elif isinstance(stmt, ForOfStatement):
            self._execute_for_of(stmt, scope)
        elif isinstance(stmt, ForInStatement):
            self._execute_for_in(stmt, scope)
        elif isinstance(stmt, WhileStatement):
            self._execute_while(stmt, scope)
        elif isinstance(stmt, DoWhileStatement):
            self._execute_do_while(stmt, scope)
        elif isinstance(stmt, BreakStatement):
            raise _BreakSignal()
        elif isinstance(stmt, ContinueStatement):
            raise _ContinueSignal()
        elif isinstance(stmt, ThrowStatement):
            value = self._evaluate(stmt.argument, scope)
            raise error_uncaught(to_display(value), value, stmt.span,
                                 self._source_line(stmt.span))
        elif isinstance(stmt, TryStatement):
            self._execute_try(stmt, scope)
        elif isinstance(stmt, EmptyStatement):
            pass
        else:
            raise error_type(f"unsupported statement {type(stmt).__name__}", stmt.span)

    def _execute_body(self, stmt: Statement, scope: Scope) -> None:
        """Execute a loop or branch body; a block body gets its own scope."""
        if isinstance(stmt, Block):
            self._execute_statements(stmt.statements, scope.child("block"))
        else:
            self._execute(stmt, scope)

    def _execute_var_decl(self, stmt: VarDecl, scope: Scope) -> None:
        for decl in stmt.declarations:
            if decl.init is None and stmt.kind == "var":
                continue  # `var x;` keeps the hoisted value
            value = UNDEFINED if decl.init is None else self._evaluate(decl.init, scope)
            if isinstance(decl.init, FunctionExpr) and isinstance(value, ScriptFunction) \
                    and value.name is None and isinstance(decl.target, NamePattern):
                value.name = decl.target.name
            self._bind_pattern(decl.target, value, scope, stmt.kind)

    def _execute_for(self, stmt: ForStatement, scope: Scope) -> None:
        loop_scope = scope.child("for")
        if isinstance(stmt.init, VarDecl):
            self._execute_var_decl(stmt.init, loop_scope)
        elif stmt.init is not None:
            self._evaluate(stmt.init, loop_scope)

        # `let` bindings are fresh per iteration so closures capture each value
        per_iteration = isinstance(stmt.init, VarDecl) and stmt.init.kind == "let"
        iteration = loop_scope
        while True:
            self.meter.tick()
            if stmt.test is not None and not is_truthy(self._evaluate(stmt.test, iteration)):
                break
            try:
                self._execute_body(stmt.body, iteration)
            except _BreakSignal:
                break
            except _ContinueSignal:
                pass
            if per_iteration:
                iteration = iteration.copy()
            if stmt.update is not None:
                self._evaluate(stmt.update, iteration)

    def _run_each(self, stmt, values, scope: Scope) -> None:
        """Shared body of for-of and for-in loops."""
        for value in values:
            self.meter.tick()
            iteration = scope.child("for-each")
            if stmt.kind is None:
                self._assign_target(stmt.target, value, iteration)
            else:
                self._bind_pattern(stmt.target, value, iteration, stmt.kind)
            try:
                self._execute_body(stmt.body, iteration)
            except _BreakSignal:
                break
            except _ContinueSignal:
                continue

    def _execute_for_of(self, stmt: ForOfStatement, scope: Scope) -> None:
        iterable = self._evaluate(stmt.iterable, scope)
        if isinstance(iterable, list):
            # Iterate the live list so pushes during the loop are visited
            def _live():
                i = 0
                while i < len(iterable):
                    yield iterable[i]
                    i += 1
            values = _live()
        elif isinstance(iterable, str):
            values = list(iterable)
        else:
            raise error_type(f"{to_display(iterable)} is not iterable", stmt.iterable.span)
        self._run_each(stmt, values, scope)

    def _execute_for_in(self, stmt: ForInStatement, scope: Scope) -> None:
        obj = self._evaluate(stmt.object, scope)
        if isinstance(obj, dict):
            keys = list(obj.keys())
        elif isinstance(obj, (list, str)):
            keys = [str(i) for i in range(len(obj))]
        elif isinstance(obj, Namespace):
            keys = obj.keys()
        else:
            keys = []
        self._run_each(stmt, keys, scope)

    def _execute_while(self, stmt: WhileStatement, scope: Scope) -> None:
        while True:
            self.meter.tick()
            if not is_truthy(self._evaluate(stmt.condition, scope)):
                break
            try:
                self._execute_body(stmt.body, scope)
            except _BreakSignal:
                break
            except _ContinueSignal:
                continue

    def _execute_do_while(self, stmt: DoWhileStatement, scope: Scope) -> None:
        while True:
            self.meter.tick()
            try:
                self._execute_body(stmt.body, scope)
            except _BreakSignal:
                break
            except _ContinueSignal:
                pass
            if not is_truthy(self._evaluate(stmt.condition, scope)):
                break

    def _execute_try(self, stmt: TryStatement, scope: Scope) -> None:
        # Only script errors are catchable; budget exhaustion passes through.
        try:
            self._execute_statements(stmt.block.statements, scope.child("try"))
        except ScriptError as err:
            if stmt.handler is None:
                raise
            catch_scope = scope.child("catch")
            if stmt.param is not None:
                self._bind_pattern(stmt.param, _caught_value(err), catch_scope, "let")
            self._execute_statements(stmt.handler.statements, catch_scope)
        finally:
            if stmt.finalizer is not None:
                self._execute_statements(stmt.finalizer.statements, scope.child("finally"))

    # =========================================================================
    # Binding
    # =========================================================================

    def _bind_pattern(self, pattern: Pattern, value: Any, scope: Scope, kind: str) -> None:
        """Bind the names of ``pattern`` to the parts of ``value``."""
        if isinstance(pattern, NamePattern):
            target = scope.function_scope() if kind == "var" else scope
            target.declare(pattern.name, value, kind, pattern.span)
        elif isinstance(pattern, ObjectPattern):
            if is_nullish(value):
                raise error_type(f"Cannot destructure '{to_string(value)}' as it is {to_string(value)}.",
                                 pattern.span)
            used = set()
            for prop in pattern.properties:
                used.add(prop.key)
                part = self._get_member(value, prop.key, prop.span)
                if part is UNDEFINED and prop.default is not None:
                    part = self._evaluate(prop.default, scope)
                self._bind_pattern(prop.target, part, scope, kind)
            if pattern.rest:
                rest = {k: v for k, v in value.items() if k not in used} if isinstance(value, dict) else {}
                self._bind_pattern(NamePattern(span=pattern.span, name=pattern.rest), rest, scope, kind)
        elif isinstance(pattern, ArrayPattern):
            if not isinstance(value, (list, str)):
                raise error_type(f"{to_display(value)} is not iterable", pattern.span)
            items = list(value)
            for i, element in enumerate(pattern.elements):
                if element is None:
                    continue
                part = items[i] if i < len(items) else UNDEFINED
                if part is UNDEFINED and element.default is not None:
                    part = self._evaluate(element.default, scope)
                self._bind_pattern(element.target, part, scope, kind)
            if pattern.rest is not None:
                self._bind_pattern(pattern.rest, items[len(pattern.elements):], scope, kind)
        else:
            raise error_type("invalid binding pattern", pattern.span)

    def _assign_target(self, target: Expression, value: Any, scope: Scope) -> None:
        """Store ``value`` into an identifier, member or index target."""
        if isinstance(target, Identifier):
            scope.assign(target.name, value, target.span)
        elif isinstance(target, MemberAccess):
            obj = self._evaluate(target.object, scope)
            self._set_member(obj, target.member, value, target.span)
        elif isinstance(target, IndexAccess):
            obj = self._evaluate(target.object, scope)
            key = self._evaluate(target.index, scope)
            self._set_index(obj, key, value, target.span)
        else:
            raise error_type("invalid assignment target", target.span)

    def _set_index(self, obj: Any, key: Any, value: Any, span: SourceSpan) -> None:
        if isinstance(obj, list):
            index = array_index(key)
            if index is None:
                raise error_type(f"cannot set property '{to_string(key)}' of an array", span)
            if index < len(obj):
                obj[index] = value
            else:
                check_length(index + 1)
                obj.extend([UNDEFINED] * (index - len(obj)))
                obj.append(value)
            return
        self._set_member(obj, to_property_key(key), value, span)

    def _set_member(self, obj: Any, name: str, value: Any, span: SourceSpan) -> None:
        if isinstance(obj, dict):
            obj[name] = value
        elif isinstance(obj, list):
            if name == "length":
                length = check_length(int(to_number(value)))
                if length < len(obj):
                    del obj[length:]
                else:
                    obj.extend([UNDEFINED] * (length - len(obj)))
            else:
                self._set_index(obj, name, value, span)
        elif is_nullish(obj):
            raise error_type(f"Cannot set properties of {to_string(obj)} (setting '{name}')", span)
        else:
            raise error_type(f"Cannot assign to read only property '{name}' of {type_of(obj)}", span)

    # =========================================================================
    # Member access
    # =========================================================================

    def _get_member(self, obj: Any, name: str, span: Optional[SourceSpan]) -> Any:
        """Read ``obj.name``; only script values have members."""
        if is_nullish(obj):
            raise error_type(f"Cannot read properties of {to_string(obj)} (reading '{name}')", span)
        if isinstance(obj, dict):
            return obj.get(name, UNDEFINED)
        if isinstance(obj, Namespace):
            return obj.get(name)
        if isinstance(obj, (list, str)):
            if name == "length":
                return len(obj)
            index = array_index(name)
            if index is not None:
                return obj[index] if index < len(obj) else UNDEFINED
        if isinstance(obj, NativeFunction):
            if name == "name":
                return obj.name
            return obj.members.get(name, UNDEFINED)
        if isinstance(obj, ScriptFunction):
            if name == "name":
                return obj.name or ""
            if name == "length":
                return len([p for p in obj.params if not p.is_rest and p.default is None])
            return UNDEFINED
        type_name = value_type_name(obj)
        if type_name is not None:
            method = self.registry.get_method(type_name, name)
            if method is not None:
                return _bind_method(method, obj)
        return UNDEFINED

    def _get_index(self, obj: Any, key: Any, span: SourceSpan) -> Any:
        if isinstance(obj, (list, str)):
            index = array_index(key)
            if index is not None:
                return obj[index] if index < len(obj) else UNDEFINED
        return self._get_member(obj, to_property_key(key), span)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, scope: Scope) -> Any:
        """Evaluate an expression to a script value."""
        if isinstance(expr, Literal):
            if expr.literal_type == TokenType.UNDEFINED:
                return UNDEFINED
            return expr.value
        elif isinstance(expr, Identifier):
            return scope.get(expr.name, expr.span)
        elif isinstance(expr, Call):
            return self._evaluate_call(expr, scope)
        elif isinstance(expr, NewExpr):
            fn = self._evaluate(expr.callee, scope)
            if not isinstance(fn, NativeFunction):
                raise error_type(f"{_describe(expr.callee)} is not a constructor", expr.span,
                                 self._source_line(expr.span))
            args = self._evaluate_elements(expr.arguments, scope)
            return self.call_function(fn, args, expr.span)
        elif isinstance(expr, MemberAccess):
            obj = self._evaluate(expr.object, scope)
            if expr.optional and is_nullish(obj):
                raise _ShortCircuit()
            return self._get_member(obj, expr.member, expr.span)
        elif isinstance(expr, IndexAccess):
            obj = self._evaluate(expr.object, scope)
            if expr.optional and is_nullish(obj):
                raise _ShortCircuit()
            key = self._evaluate(expr.index, scope)
            return self._get_index(obj, key, expr.span)
        elif isinstance(expr, BinaryOp):
            left = self._evaluate(expr.left, scope)
            right = self._evaluate(expr.right, scope)
            return _binary(expr.operator, left, right)
        elif isinstance(expr, LogicalOp):
            return self._evaluate_logical(expr, scope)
        elif isinstance(expr, UnaryOp):
            return self._evaluate_unary(expr, scope)
        elif isinstance(expr, UpdateExpr):
            return self._evaluate_update(expr, scope)
        elif isinstance(expr, Assignment):
            return self._evaluate_assignment(expr, scope)
        elif isinstance(expr, ConditionalExpr):
            if is_truthy(self._evaluate(expr.condition, scope)):
                return self._evaluate(expr.true_branch, scope)
            return self._evaluate(expr.false_branch, scope)
        elif isinstance(expr, ArrayLiteral):
            return self._evaluate_array(expr, scope)
        elif isinstance(expr, ObjectLiteral):
            return self._evaluate_object(expr, scope)
        elif isinstance(expr, FunctionExpr):
            return self._make_function(expr, scope)
        elif isinstance(expr, OptionalChain):
            try:
                return self._evaluate(expr.expression, scope)
            except _ShortCircuit:
                return UNDEFINED
        elif isinstance(expr, SequenceExpr):
            result = UNDEFINED
            for item in expr.expressions:
                result = self._evaluate(item, scope)
            return result
        elif isinstance(expr, SpreadElement):
            raise error_type("spread syntax is only valid in arrays, objects and calls", expr.span)
        raise error_type(f"unsupported expression {type(expr).__name__}", expr.span)

    def _evaluate_call(self, expr: Call, scope: Scope) -> Any:
        callee = expr.callee
        if isinstance(callee, MemberAccess):
            obj = self._evaluate(callee.object, scope)
            if callee.optional and is_nullish(obj):
                raise _ShortCircuit()
            fn = self._get_member(obj, callee.member, callee.span)
        elif isinstance(callee, IndexAccess):
            obj = self._evaluate(callee.object, scope)
            if callee.optional and is_nullish(obj):
                raise _ShortCircuit()
            fn = self._get_index(obj, self._evaluate(callee.index, scope), callee.span)
        else:
            fn = self._evaluate(callee, scope)

        if expr.optional and is_nullish(fn):
            raise _ShortCircuit()
        if not is_callable(fn):
            raise error_type(f"{_describe(callee)} is not a function", callee.span,
                             self._source_line(callee.span))
        args = self._evaluate_elements(expr.arguments, scope)
        return self.call_function(fn, args, expr.span)

    def _evaluate_elements(self, elements: List[Optional[Expression]], scope: Scope) -> List[Any]:
        """Evaluate array elements or call arguments, expanding spreads."""
        values: List[Any] = []
        for element in elements:
            if element is None:
                values.append(UNDEFINED)
            elif isinstance(element, SpreadElement):
                spread = self._evaluate(element.argument, scope)
                if isinstance(spread, (list, str)):
                    values.extend(spread)
                else:
                    raise error_type(f"{to_display(spread)} is not iterable", element.span)
            else:
                values.append(self._evaluate(element, scope))
        check_length(len(values))
        return values

    def _evaluate_array(self, expr: ArrayLiteral, scope: Scope) -> List[Any]:
        return self._evaluate_elements(expr.elements, scope)

    def _evaluate_object(self, expr: ObjectLiteral, scope: Scope) -> dict:
        result = {}
        for prop in expr.properties:
            if prop.is_spread:
                source = self._evaluate(prop.value, scope)
                if isinstance(source, dict):
                    result.update(source)
                elif isinstance(source, (list, str)):
                    result.update({str(i): v for i, v in enumerate(source)})
                continue
            if prop.computed_key is not None:
                key = to_property_key(self._evaluate(prop.computed_key, scope))
            else:
                key = prop.key
            value = self._evaluate(prop.value, scope)
            if isinstance(value, ScriptFunction) and value.name is None:
                value.name = key
            result[key] = value
        return result

    def _evaluate_logical(self, expr: LogicalOp, scope: Scope) -> Any:
        left = self._evaluate(expr.left, scope)
        if expr.operator == TokenType.AND:
            return self._evaluate(expr.right, scope) if is_truthy(left) else left
        if expr.operator == TokenType.OR:
            return left if is_truthy(left) else self._evaluate(expr.right, scope)
        # ??
        return self._evaluate(expr.right, scope) if is_nullish(left) else left

    def _evaluate_unary(self, expr: UnaryOp, scope: Scope) -> Any:
        if expr.operator == TokenType.TYPEOF:
            operand = expr.operand
            if isinstance(operand, Identifier) and not scope.contains(operand.name):
                return "undefined"
            return type_of(self._evaluate(operand, scope))
        value = self._evaluate(expr.operand, scope)
        if expr.operator == TokenType.NOT:
            return not is_truthy(value)
        if expr.operator == TokenType.MINUS:
            return -to_number(value)
        return to_number(value)

    def _evaluate_update(self, expr: UpdateExpr, scope: Scope) -> Any:
        old = to_number(self._read_target(expr.target, scope))
        new = add(old, 1) if expr.operator == TokenType.PLUS_PLUS else subtract(old, 1)
        self._assign_target(expr.target, new, scope)
        return new if expr.prefix else old

    def _evaluate_assignment(self, expr: Assignment, scope: Scope) -> Any:
        if expr.operator == TokenType.ASSIGN:
            value = self._evaluate(expr.value, scope)
        else:
            current = self._read_target(expr.target, scope)
            value = _COMPOUND[expr.operator](current, self._evaluate(expr.value, scope))
        self._assign_target(expr.target, value, scope)
        return value

    def _read_target(self, target: Expression, scope: Scope) -> Any:
        if isinstance(target, Identifier):
            return scope.get(target.name, target.span)
        return self._evaluate(target, scope)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def _source_line(self, span: Optional[SourceSpan]) -> Optional[str]:
        if span is None:
            return None
        line = span.start.line
        if 1 <= line <= len(self._source_lines):
            return self._source_lines[line - 1]
        return None

    def _annotate(self, err: ScriptError) -> None:
        """Attach the offending source line to a runtime diagnostic."""
        if err.diagnostic.source_line is None:
            err.diagnostic.source_line = self._source_line(err.diagnostic.span)


def _binary(operator: TokenType, left: Any, right: Any) -> Any:
    if operator in _ARITHMETIC:
        return _ARITHMETIC[operator](left, right)
    if operator in _RELATIONAL:
        return compare(_RELATIONAL[operator], left, right)
    if operator == TokenType.STRICT_EQ:
        return strict_equals(left, right)
    if operator == TokenType.STRICT_NE:
        return not strict_equals(left, right)
    if operator == TokenType.EQ:
        return loose_equals(left, right)
    if operator == TokenType.NE:
        return not loose_equals(left, right)
    raise error_type(f"unsupported operator {operator.name}")


def _bind_method(method, receiver: Any) -> NativeFunction:
    def _bound(interp, *args):
        return method.implementation(interp, receiver, *args)
    return NativeFunction(method.name, _bound, needs_interpreter=True)


def _caught_value(err: ScriptError) -> Any:
    """The value a ``catch (e)`` clause binds for ``err``."""
    if err.is_throw:
        return err.thrown
    return {"name": err.kind, "message": err.diagnostic.message}


def _jump_keyword(signal: Exception) -> str:
    return "break" if isinstance(signal, _BreakSignal) else "continue"


def _describe(expr: Expression) -> str:
    """Short source-like text for an expression, used in error messages."""
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, MemberAccess):
        return f"{_describe(expr.object)}.{expr.member}"
    if isinstance(expr, IndexAccess):
        return f"{_describe(expr.object)}[...]"
    if isinstance(expr, Call):
        return f"{_describe(expr.callee)}(...)"
    if isinstance(expr, OptionalChain):
        return _describe(expr.expression)
    return "expression"


def _var_names(stmt: Statement) -> List[str]:
    """Names declared with ``var`` anywhere in ``stmt``, excluding nested functions."""
    if isinstance(stmt, VarDecl):
        if stmt.kind != "var":
            return []
        names = []
        for decl in stmt.declarations:
            names.extend(pattern_names(decl.target))
        return names
    if isinstance(stmt, Block):
        return [n for s in stmt.statements for n in _var_names(s)]
    if isinstance(stmt, IfStatement):
        names = _var_names(stmt.then_branch)
        if stmt.else_branch is not None:
            names += _var_names(stmt.else_branch)
        return names
    if isinstance(stmt, ForStatement):
        names = _var_names(stmt.init) if isinstance(stmt.init, VarDecl) else []
        return names + _var_names(stmt.body)
    if isinstance(stmt, (ForOfStatement, ForInStatement)):
        names = pattern_names(stmt.target) if stmt.kind == "var" else []
        return names + _var_names(stmt.body)
    if isinstance(stmt, (WhileStatement, DoWhileStatement)):
        return _var_names(stmt.body)
    if isinstance(stmt, TryStatement):
        names = _var_names(stmt.block)
        if stmt.handler is not None:
            names += _var_names(stmt.handler)
        if stmt.finalizer is not None:
            names += _var_names(stmt.finalizer)
        return names
    return []


__all__ = ["Interpreter"]
