"""
Unit tests for the script interpreter.

Tests cover:
- Values and operators (JavaScript conversion rules)
- Scopes, closures and destructuring
- Control flow and exceptions
- Built-in methods and globals
- Budget enforcement
"""

import math
import textwrap

import pytest

from morphos.dsl import parse_source, ScriptError
from morphos.dsl.runtime import (
    UNDEFINED, BudgetExceeded, BudgetMeter, ExecutionBudget, ExecutionCancelled,
    Interpreter, Namespace, Scope, is_truthy, to_number, to_string, type_of,
)
from morphos.kernel import default_capabilities


def run_program(source, budget=None, cancelled=None):
    """Execute ``source`` and return what main() returns."""
    source = textwrap.dedent(source)
    meter = BudgetMeter(budget or ExecutionBudget(), cancelled)
    interp = Interpreter(default_capabilities().root_scope(), meter, source)
    scope = interp.execute_program(parse_source(source))
    return interp.call_function(scope.get("main"), [])


def evaluate(body, **kwargs):
    """Run ``body`` as the body of main()."""
    return run_program("function main() {\n" + textwrap.dedent(body) + "\n}", **kwargs)


# =============================================================================
# Values
# =============================================================================

class TestValues:
    """Test value conversions."""

    @pytest.mark.parametrize("value,expected", [
        (0, False), (1, True), ("", False), ("0", True), (None, False),
        (UNDEFINED, False), ([], True), ({}, True), (math.nan, False),
    ])
    def test_truthiness(self, value, expected):
        """JavaScript truthiness."""
        assert is_truthy(value) is expected

    def test_to_number(self):
        """String and keyword conversion to numbers."""
        assert to_number("  12 ") == 12
        assert to_number("") == 0
        assert to_number(True) == 1
        assert to_number(None) == 0
        assert math.isnan(to_number(UNDEFINED))
        assert math.isnan(to_number("abc"))

    def test_to_string(self):
        """String conversion."""
        assert to_string(None) == "null"
        assert to_string(UNDEFINED) == "undefined"
        assert to_string([1, None, "a"]) == "1,,a"
        assert to_string({}) == "[object Object]"

    def test_type_of(self):
        """typeof results."""
        assert type_of(None) == "object"
        assert type_of(UNDEFINED) == "undefined"
        assert type_of(1.5) == "number"
        assert type_of(Namespace("x")) == "object"


# =============================================================================
# Scopes
# =============================================================================

class TestScope:
    """Test scope declaration and assignment."""

    def test_lookup_through_parents(self):
        """Child scopes see parent bindings."""
        root = Scope.from_bindings({"a": 1})
        child = root.child()
        assert child.get("a") == 1

    def test_root_bindings_are_read_only(self):
        """Capability bindings cannot be reassigned."""
        root = Scope.from_bindings({"a": 1})
        with pytest.raises(ScriptError) as exc_info:
            root.child().assign("a", 2)
        assert exc_info.value.kind == "TypeError"

    def test_undeclared_assignment(self):
        """Assigning an unknown name is a ReferenceError."""
        with pytest.raises(ScriptError) as exc_info:
            Scope().assign("nope", 1)
        assert exc_info.value.kind == "ReferenceError"

    def test_redeclaration(self):
        """let names cannot be declared twice in one scope."""
        scope = Scope()
        scope.declare("x", 1, "let")
        with pytest.raises(ScriptError) as exc_info:
            scope.declare("x", 2, "let")
        assert exc_info.value.diagnostic.code == "E407"


# =============================================================================
# Interpreter
# =============================================================================

class TestOperators:
    """Test expression evaluation."""

    @pytest.mark.parametrize("expr,expected", [
        ("1 + 2 * 3", 7),
        ("'a' + 1", "a1"),
        ("7 % 3", 1),
        ("2 ** 10", 1024),
        ("10 / 4", 2.5),
        ("1 == '1'", True),
        ("1 === '1'", False),
        ("null == undefined", True),
        ("null ?? 5", 5),
        ("0 || 'x'", "x"),
        ("0 && 'x'", 0),
        ("typeof undefinedName", "undefined"),
        ("typeof null", "object"),
        ("typeof main", "function"),
        ("!''", True),
        ("-'3'", -3),
        ("[1, 2] + ''", "1,2"),
    ])
    def test_expressions(self, expr, expected):
        """Operators follow JavaScript rules."""
        assert evaluate(f"return {expr}") == expected

    def test_division_by_zero(self):
        """Division by zero gives Infinity."""
        assert evaluate("return 1 / 0") == math.inf

    def test_compound_assignment_and_update(self):
        """+=, ++ and -- work on names and members."""
        result = evaluate("""
            let a = 1
            a += 4
            const o = { n: 1 }
            o.n++
            const old = a--
            return [a, o.n, old]
        """)
        assert result == [4, 2, 5]


class TestFunctions:
    """Test functions, closures and parameters."""

    def test_closure_counter(self):
        """Closures keep their environment."""
        result = evaluate("""
            function counter() {
                let n = 0
                return () => ++n
            }
            const c = counter()
            c(); c()
            return c()
        """)
        assert result == 3

    def test_defaults_and_rest(self):
        """Default values and rest parameters."""
        result = evaluate("""
            const f = (a, b = 10, ...rest) => [a, b, rest.length]
            return [f(1), f(1, 2, 3, 4)]
        """)
        assert result == [[1, 10, 0], [1, 2, 2]]

    def test_hoisted_function_declaration(self):
        """Functions can be called before their declaration."""
        assert evaluate("return helper(2)\nfunction helper(x) { return x * 3 }") == 6

    def test_recursion(self):
        """Recursive functions."""
        assert evaluate("""
            function fact(n) { return n <= 1 ? 1 : n * fact(n - 1) }
            return fact(10)
        """) == 3628800

    def test_call_depth_limit(self):
        """Unbounded recursion is a RangeError."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("function f() { return f() }\nreturn f()",
                     budget=ExecutionBudget(max_call_depth=20))
        assert exc_info.value.diagnostic.code == "E403"
        assert exc_info.value.kind == "RangeError"

    def test_per_iteration_let_binding(self):
        """Each loop iteration gets a fresh let binding."""
        result = evaluate("""
            const fs = []
            for (let i = 0; i < 3; i++) { fs.push(() => i) }
            return fs.map(f => f())
        """)
        assert result == [0, 1, 2]


class TestDestructuring:
    """Test binding patterns."""

    def test_object_pattern(self):
        """Renames, defaults and rest."""
        result = evaluate("""
            const { a, b: renamed, c = 3, ...others } = { a: 1, b: 2, d: 4, e: 5 }
            return [a, renamed, c, Object.keys(others)]
        """)
        assert result == [1, 2, 3, ["d", "e"]]

    def test_array_pattern(self):
        """Holes, defaults and rest."""
        result = evaluate("""
            const [x, , y = 7, ...rest] = [1, 2, undefined, 4, 5]
            return [x, y, rest]
        """)
        assert result == [1, 7, [4, 5]]

    def test_destructure_null(self):
        """Destructuring null is a TypeError."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("const { a } = null")
        assert exc_info.value.kind == "TypeError"

    def test_require_destructuring(self):
        """The JSCAD import line binds kernel namespaces."""
        result = run_program("""
            const { primitives, booleans } = require('@jscad/modeling')
            function main() { return [typeof primitives.cuboid, typeof booleans.union] }
        """)
        assert result == ["function", "function"]


class TestControlFlow:
    """Test loops and branches."""

    def test_loops(self):
        """for, for-of, for-in, while and do-while."""
        result = evaluate("""
            let total = 0
            for (let i = 0; i < 5; i++) { if (i === 3) continue; total += i }
            for (const v of [10, 20]) total += v
            const keys = []
            for (const k in { p: 1, q: 2 }) keys.push(k)
            let n = 0
            while (true) { n++; if (n > 4) break }
            do { n-- } while (n > 2)
            return [total, keys, n]
        """)
        assert result == [37, ["p", "q"], 2]

    def test_spread(self):
        """Spread in arrays, objects and calls."""
        result = evaluate("""
            const a = [1, 2]
            const o = { ...{ x: 1 }, y: 2 }
            return [Math.max(...a, 0), [...a, 3], o.x + o.y]
        """)
        assert result == [2, [1, 2, 3], 3]

    def test_optional_chaining(self):
        """?. short-circuits on null."""
        assert evaluate("const o = null\nreturn o?.a.b") is UNDEFINED

    def test_break_outside_loop(self):
        """break at top level of a function is an error."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("break")
        assert exc_info.value.diagnostic.code == "E408"


class TestErrors:
    """Test throw, try/catch and runtime errors."""

    def test_unbound_name(self):
        """Reading an unknown name is a ReferenceError."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("return missing + 1")
        assert exc_info.value.kind == "ReferenceError"
        assert "missing is not defined" in exc_info.value.js_message

    def test_const_reassignment(self):
        """Assigning a const is a TypeError."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("const a = 1\na = 2")
        assert exc_info.value.kind == "TypeError"

    def test_read_property_of_undefined(self):
        """Member access on undefined is a TypeError."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("let u\nreturn u.size")
        assert "Cannot read properties of undefined" in str(exc_info.value)

    def test_catch_thrown_value(self):
        """catch binds the thrown value unchanged."""
        result = evaluate("""
            try { throw { code: 7 } } catch (e) { return e.code }
        """)
        assert result == 7

    def test_catch_runtime_error(self):
        """Runtime errors are caught as { name, message }."""
        result = evaluate("""
            try { nope() } catch (e) { return [e.name, e.message] }
        """)
        assert result == ["ReferenceError", "nope is not defined"]

    def test_error_constructor(self):
        """new Error() produces a catchable error object."""
        result = evaluate("""
            try { throw new Error('bad size') } catch (e) { return e.message }
        """)
        assert result == "bad size"

    def test_uncaught_throw(self):
        """An uncaught throw surfaces with its message."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("throw new RangeError('too big')")
        assert exc_info.value.diagnostic.code == "E404"
        assert "too big" in str(exc_info.value)

    def test_finally_runs(self):
        """finally runs after return."""
        result = evaluate("""
            const log = []
            function f() { try { return 1 } finally { log.push('f') } }
            return [f(), log]
        """)
        assert result == [1, ["f"]]

    def test_kernel_error_is_catchable(self):
        """Invalid kernel arguments raise a script Error."""
        result = run_program("""
            const { primitives } = require('@jscad/modeling')
            function main() {
                try { primitives.cuboid({ size: [1, -1, 1] }) } catch (e) { return e.message }
            }
        """)
        assert result.startswith("cuboid")

    def test_unknown_module(self):
        """require() only knows the kernel module."""
        with pytest.raises(ScriptError) as exc_info:
            evaluate("return require('fs')")
        assert exc_info.value.diagnostic.code == "E406"

    def test_namespace_is_read_only(self):
        """Kernel namespaces cannot be modified."""
        with pytest.raises(ScriptError) as exc_info:
            run_program("""
                const { primitives } = require('@jscad/modeling')
                function main() { primitives.cuboid = null }
            """)
        assert exc_info.value.kind == "TypeError"

    def test_host_attributes_unreachable(self):
        """Python attributes of host objects are not visible."""
        result = run_program("""
            const { primitives } = require('@jscad/modeling')
            function main() {
                return [primitives.__class__, primitives.cuboid.__globals__, Math.__dict__]
            }
        """)
        assert result == [UNDEFINED, UNDEFINED, UNDEFINED]


class TestBuiltins:
    """Test standard library methods."""

    def test_array_methods(self):
        """map, filter, reduce, flat and friends."""
        result = evaluate("""
            const a = [3, 1, 2]
            return [
                a.map(x => x * 2),
                a.filter(x => x > 1),
                a.reduce((s, x) => s + x, 0),
                [[1], [2, [3]]].flat(),
                a.slice().sort((p, q) => p - q),
                a.includes(2),
                a.indexOf(9),
                a.join('-'),
                Array.from({ length: 3 }, (_, i) => i * i),
            ]
        """)
        assert result == [
            [6, 2, 4], [3, 2], 6, [1, 2, [3]], [1, 2, 3], True, -1, "3-1-2", [0, 1, 4],
        ]

    def test_string_methods(self):
        """String helpers."""
        result = evaluate("""
            return ['ab'.toUpperCase(), ' x '.trim(), '7'.padStart(3, '0'), 'a,b'.split(',')]
        """)
        assert result == ["AB", "x", "007", ["a", "b"]]

    def test_math(self):
        """Math namespace."""
        result = evaluate("return [Math.PI, Math.sqrt(16), Math.max(), Math.round(2.5)]")
        assert result[0] == pytest.approx(math.pi)
        assert result[1] == 4
        assert result[2] == -math.inf
        assert result[3] == 3

    def test_to_fixed(self):
        """Number formatting."""
        assert evaluate("return (1.23456).toFixed(2)") == "1.23"

    def test_console_logs(self, caplog):
        """console.log goes to the logging system."""
        with caplog.at_level("INFO"):
            evaluate("console.log('hello', 42)")
        assert "hello 42" in caplog.text


class TestBudget:
    """Test execution budget enforcement."""

    def test_invalid_budget(self):
        """Budget limits must be positive."""
        with pytest.raises(ValueError):
            ExecutionBudget(timeout_seconds=0)

    def test_step_limit(self):
        """An infinite loop exhausts the step budget."""
        with pytest.raises(BudgetExceeded):
            evaluate("while (true) {}", budget=ExecutionBudget(max_steps=10_000))

    def test_budget_not_catchable(self):
        """try/catch cannot swallow budget exhaustion."""
        with pytest.raises(BudgetExceeded):
            evaluate("""
                try { while (true) {} } catch (e) { return 'caught' }
            """, budget=ExecutionBudget(max_steps=10_000))

    def test_wall_clock_limit(self):
        """The deadline is checked while running."""
        now = [0.0]

        def clock():
            now[0] += 1.0
            return now[0]

        meter = BudgetMeter(ExecutionBudget(timeout_seconds=5), clock=clock)
        with pytest.raises(BudgetExceeded):
            for _ in range(10_000):
                meter.tick()

    def test_cancellation(self):
        """A cancelled run stops at the next check."""
        with pytest.raises(ExecutionCancelled):
            evaluate("while (true) {}", cancelled=lambda: True)
