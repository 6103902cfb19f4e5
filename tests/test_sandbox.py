"""
Tests for the sandboxed executor and the solid reducer.
"""

import logging

import pytest

from morphos.errors import FailureCategory, RuntimeFailedError
from morphos.dsl.runtime import ExecutionBudget
from morphos.kernel import primitives
from morphos.kernel.geometry import Outline, Solid
from morphos.outcome import Program, RuntimeFailed, SolidCollection, Success, Timeout
from morphos.reducer import UNION_FALLBACK_WARNING, reduce
from morphos.sandbox import EMPTY_ARRAY, MISSING_MAIN, NO_GEOMETRY, classify, execute

HEADER = "const { primitives, transforms, booleans } = require('@jscad/modeling')\n"


def run(body, **kwargs):
    return execute(Program(HEADER + body), **kwargs)


class TestExecute:
    """Running programs to an outcome."""

    def test_single_solid(self):
        """main returning a solid is a Success."""
        outcome = run("function main() { return primitives.cuboid({ size: [1, 2, 3] }) }")
        assert isinstance(outcome, Success)
        assert isinstance(outcome.geometry, Solid)

    def test_arrow_main(self):
        """main may be an arrow function bound with const."""
        outcome = run("const main = () => primitives.sphere({ segments: 8 })")
        assert outcome.ok

    def test_array_result(self):
        """Arrays are flattened into a collection."""
        outcome = run("""
            function main() {
                const a = primitives.cube()
                return [a, [transforms.translateX(3, a)]]
            }
        """)
        assert isinstance(outcome.geometry, SolidCollection)
        assert len(outcome.geometry) == 2

    def test_missing_main(self):
        """Programs without main fail before running."""
        outcome = run("const x = 1")
        assert isinstance(outcome, RuntimeFailed)
        assert outcome.message == MISSING_MAIN

    def test_main_not_a_function(self):
        """A non-callable main is reported."""
        outcome = run("const main = 5")
        assert "main is not a function" in outcome.message

    def test_null_result(self):
        """Returning nothing is a failure."""
        outcome = run("function main() { }")
        assert outcome.category is FailureCategory.RUNTIME_FAILED
        assert outcome.message == NO_GEOMETRY

    def test_empty_array(self):
        """An empty array is a failure."""
        assert run("function main() { return [] }").message == EMPTY_ARRAY

    def test_outline_result(self):
        """A bare 2D outline asks for an extrusion."""
        outcome = run("function main() { return primitives.square() }")
        assert "extrude" in outcome.message

    def test_syntax_error(self):
        """Parse errors become runtime failures with the location."""
        outcome = run("function main() { return ( }")
        assert isinstance(outcome, RuntimeFailed)
        assert "E1" in outcome.message

    def test_thrown_error(self):
        """Uncaught script errors carry their message."""
        outcome = run("function main() { throw new Error('wall too thin') }")
        assert isinstance(outcome, RuntimeFailed)
        assert "wall too thin" in outcome.message

    def test_kernel_error(self):
        """Kernel argument errors are runtime failures."""
        outcome = run("function main() { return primitives.cylinder({ radius: -1 }) }")
        assert isinstance(outcome, RuntimeFailed)
        assert "radius" in outcome.message

    def test_infinite_loop_times_out(self):
        """Exhausting the step budget is a Timeout."""
        outcome = run("function main() { while (true) {} }",
                      budget=ExecutionBudget(max_steps=50_000))
        assert isinstance(outcome, Timeout)
        assert outcome.category is FailureCategory.TIMEOUT

    def test_top_level_loop_times_out(self):
        """Top-level code is budgeted too."""
        outcome = run("for (;;) {}\nfunction main() {}", budget=ExecutionBudget(max_steps=50_000))
        assert isinstance(outcome, Timeout)

    def test_deep_recursion(self):
        """Runaway recursion is a runtime failure, not a crash."""
        outcome = run("function f(n) { return f(n + 1) }\nfunction main() { return f(0) }")
        assert isinstance(outcome, RuntimeFailed)
        assert "call stack" in outcome.message

    def test_cancelled(self):
        """A cancelled run stops with a Timeout outcome."""
        outcome = run("function main() { while (true) {} }", cancelled=lambda: True)
        assert isinstance(outcome, Timeout)

    def test_no_host_access(self):
        """Host globals are not defined inside the sandbox."""
        outcome = execute(Program("function main() { return open('/etc/passwd') }"))
        assert "open is not defined" in outcome.message


class TestClassify:
    """Classification of main's return value."""

    def test_nested_arrays_flattened(self):
        """Nested arrays flatten in order."""
        a, b = Solid(()), Solid(())
        outcome = classify([[a], [[b]]])
        assert list(outcome.geometry) == [a, b]

    def test_number_rejected(self):
        """Scalars are not geometry."""
        assert "number" in classify(3).message

    def test_outline(self):
        """Outlines are not solids."""
        assert not classify(Outline(((0, 0), (1, 0), (0, 1)))).ok


class TestReducer:
    """Reducing results to one solid."""

    def test_single_solid_unchanged(self):
        """A solid passes through."""
        box = primitives.cube()
        assert reduce(box) is box

    def test_single_entry_collection(self):
        """A one-solid collection needs no union."""
        box = primitives.cube()
        assert reduce(SolidCollection((box,))) is box

    def test_non_solids_ignored(self):
        """Non-solid entries are skipped."""
        box = primitives.cube()
        assert reduce(SolidCollection((1, "x", box))) is box

    def test_no_solids(self):
        """A collection without solids fails."""
        with pytest.raises(RuntimeFailedError):
            reduce(SolidCollection((1, 2)))

    def test_union_used(self):
        """Several solids are unioned."""
        a, b = primitives.cube(), primitives.sphere({"segments": 8})
        calls = []

        def union(*solids):
            calls.append(solids)
            return a

        assert reduce(SolidCollection((a, b)), union=union) is a
        assert calls == [(a, b)]

    def test_union_failure_falls_back(self, caplog):
        """A failed union keeps the first solid and warns."""
        a, b = primitives.cube(), primitives.sphere({"segments": 8})

        def union(*solids):
            raise ValueError("engine exploded")

        warnings = []
        with caplog.at_level(logging.WARNING, logger="morphos.reducer"):
            assert reduce(SolidCollection((a, b)), union=union, warnings=warnings) is a
        assert warnings and warnings[0].startswith(UNION_FALLBACK_WARNING)
        assert "engine exploded" in caplog.text

    def test_degenerate_entry_falls_back(self, caplog):
        """An open surface in the collection makes the real union fail."""
        box = primitives.cuboid({"size": [10, 10, 10]})
        sheet = Solid((((0.0, 0.0, 20.0), (5.0, 0.0, 20.0), (0.0, 5.0, 20.0)),))
        warnings = []
        with caplog.at_level(logging.WARNING, logger="morphos.reducer"):
            assert reduce(SolidCollection((box, sheet)), warnings=warnings) is box
        assert warnings and warnings[0].startswith(UNION_FALLBACK_WARNING)

    def test_empty_union_result_falls_back(self):
        """An empty union of non-empty solids counts as a failure."""
        a, b = primitives.cube(), primitives.sphere({"segments": 8})
        warnings = []
        assert reduce(SolidCollection((a, b)), union=lambda *s: Solid(()), warnings=warnings) is a
        assert warnings
