"""
Tests for the pipeline entry points: compile, the isolated worker and the
debounced session.
"""

import threading

import pytest

from morphos import compile, ExecutionBudget
from morphos.errors import FailureCategory
from morphos.io.stl import encode, verify
from morphos.kernel import primitives
from morphos.outcome import PipelineError, Program
from morphos.pipeline import CompileResult, ModelSession, compile_isolated, compile_program
from morphos.pipeline.compiler import NO_CODE
from morphos.pipeline.session import inprocess_runner

BRACKET = """
const { primitives, booleans, transforms } = require('@jscad/modeling')

function main() {
    const plate = primitives.cuboid({ size: [40, 20, 4] })
    const holes = [-12, 12].map(x =>
        transforms.translate([x, 0, 0], primitives.cylinder({ radius: 2.5, height: 10, segments: 24 })))
    return booleans.subtract(plate, ...holes)
}
"""

SIMPLE = """
const { primitives } = require('@jscad/modeling')
function main() { return primitives.cuboid({ size: [10, 10, 10] }) }
"""

TWO_PARTS = """
const { primitives, transforms } = require('@jscad/modeling')
function main() {
    return [primitives.cube({ size: 2 }), transforms.translateX(5, primitives.cube({ size: 2 }))]
}
"""


class TestCompile:
    """In-process compile."""

    def test_simple_program(self):
        """A cuboid compiles to 12 triangles."""
        result = compile(SIMPLE)
        assert result.ok
        assert result.error is None
        assert result.artifact.triangle_count == 12
        assert verify(result.artifact.data) == 12

    def test_boolean_program(self):
        """Booleans run through the manifold engine."""
        pytest.importorskip("manifold3d")
        result = compile(BRACKET)
        assert result.ok, result.error
        assert len(result.artifact) == 84 + 50 * result.artifact.triangle_count

    def test_array_is_unioned(self):
        """Arrays of solids are reduced to one artifact."""
        pytest.importorskip("manifold3d")
        result = compile(TWO_PARTS)
        assert result.ok
        assert result.artifact.triangle_count == 24

    def test_degenerate_part_keeps_first_solid(self):
        """A union that fails on an open surface still yields the first solid."""
        result = compile("""
            function main() {
                const sheet = primitives.polyhedron({ points: [[0, 0, 20], [5, 0, 20], [0, 5, 20]],
                                                      faces: [[0, 1, 2]] })
                return [primitives.cuboid({ size: [10, 10, 10] }), sheet]
            }
        """)
        assert result.ok, result.error
        assert result.artifact.triangle_count == 12
        assert result.warnings and "first solid" in result.warnings[0]

    def test_empty_program(self):
        """Blank input never reaches the gate."""
        result = compile("   \n")
        assert result.error.message == NO_CODE
        assert result.error.stage == "validate"

    def test_security_rejection(self):
        """Gate failures carry their violations."""
        result = compile("fetch('x')\nfunction main() {}")
        assert not result.ok
        assert result.error.category is FailureCategory.SECURITY_REJECTED
        assert result.error.stage == "validate"
        assert result.error.details

    def test_runtime_failure(self):
        """Execution errors are reported, not raised."""
        result = compile("function main() { return missing }")
        assert result.error.category is FailureCategory.RUNTIME_FAILED
        assert result.error.stage == "execute"
        assert "missing is not defined" in result.error.message

    def test_timeout(self):
        """Exhausted budgets are reported as timeouts."""
        result = compile("function main() { for (;;) {} }", ExecutionBudget(max_steps=20_000))
        assert result.error.category is FailureCategory.TIMEOUT

    def test_triangle_limit_is_encoding_failure(self):
        """Too many triangles fail at the encode stage."""
        result = compile(SIMPLE, ExecutionBudget(max_triangles=10))
        assert result.error.category is FailureCategory.ENCODING_FAILED
        assert result.error.stage == "encode"

    def test_no_solid_in_array(self):
        """An array of non-solids fails in the reducer."""
        result = compile("function main() { return [1, 2] }")
        assert result.error.category is FailureCategory.RUNTIME_FAILED
        assert result.error.stage == "reduce"

    def test_stage_callback(self):
        """Stages are reported in order."""
        stages = []
        compile_program(Program(SIMPLE), on_stage=stages.append)
        assert stages == ["validate", "execute", "encode"]

    def test_cancelled(self):
        """A cancelled run has neither artifact nor error."""
        result = compile("function main() { for (;;) {} }", cancelled=lambda: True)
        assert result.cancelled
        assert result.artifact is None and result.error is None

    def test_header_name(self):
        """The artifact header carries the given name."""
        result = compile(SIMPLE, name="bracket")
        assert result.artifact.data.startswith(b"bracket")


class TestIsolated:
    """The spawn worker."""

    def test_isolated_success(self):
        """A worker returns the encoded artifact."""
        result = compile_isolated(SIMPLE, ExecutionBudget(timeout_seconds=30))
        assert result.ok
        assert result.artifact.triangle_count == 12

    def test_isolated_failure(self):
        """Failures come back as records."""
        result = compile_isolated("eval('1')\nfunction main() {}")
        assert result.error.category is FailureCategory.SECURITY_REJECTED

    def test_isolated_timeout(self):
        """A runaway program in the worker is stopped."""
        budget = ExecutionBudget(timeout_seconds=0.5, max_steps=10 ** 12)
        result = compile_isolated("function main() { while (true) {} }", budget, grace=10)
        assert result.error.category is FailureCategory.TIMEOUT

    def test_isolated_cancel(self):
        """A set cancel event stops the worker."""
        event = threading.Event()
        event.set()
        result = compile_isolated("function main() { while (true) {} }", cancel_event=event)
        assert result.cancelled


def _artifact():
    return encode(primitives.cube())


class FakeRunner:
    """Runner that returns canned results and records what it ran."""

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []
        self.release = {}
        self.started = {}

    def hold(self, text):
        self.release[text] = threading.Event()
        self.started[text] = threading.Event()

    def __call__(self, text, budget, cancel):
        self.calls.append(text)
        if text in self.release:
            self.started[text].set()
            self.release[text].wait(5)
        return self.results.get(text, CompileResult(artifact=_artifact()))


class TestSession:
    """Debounce and last-request-wins."""

    def test_result_displayed(self):
        """A successful run fills the display slot and calls back."""
        seen = []
        session = ModelSession(debounce=0.01, on_result=seen.append, runner=FakeRunner())
        token = session.submit("a")
        assert token.wait(5)
        assert session.displayed is token.result.artifact
        assert seen == [token.result]

    def test_debounce_drops_superseded(self):
        """Rapid submissions only run the last one."""
        runner = FakeRunner()
        session = ModelSession(debounce=0.2, runner=runner)
        first = session.submit("a")
        second = session.submit("b")
        assert second.wait(5)
        assert first.done and first.cancelled
        assert runner.calls == ["b"]

    def test_stale_result_ignored(self):
        """A slow earlier request cannot overwrite a newer result."""
        old_artifact, new_artifact = _artifact(), _artifact()
        runner = FakeRunner({
            "slow": CompileResult(artifact=old_artifact),
            "fast": CompileResult(artifact=new_artifact),
        })
        runner.hold("slow")
        seen = []
        session = ModelSession(debounce=0.01, on_result=seen.append, runner=runner)
        slow = session.submit("slow")
        assert runner.started["slow"].wait(5)
        fast = session.submit("fast")
        assert slow.cancelled
        assert fast.wait(5)
        runner.release["slow"].set()
        assert slow.wait(5)
        assert session.displayed is new_artifact
        assert [r.artifact for r in seen] == [new_artifact]

    def test_failure_keeps_previous_artifact(self):
        """An error is recorded without clearing the display."""
        error = PipelineError(FailureCategory.RUNTIME_FAILED, "boom", "execute")
        runner = FakeRunner({"bad": CompileResult(error=error)})
        session = ModelSession(debounce=0.01, runner=runner)
        good = session.submit("good")
        good.wait(5)
        shown = session.displayed
        session.submit("bad").wait(5)
        assert session.displayed is shown
        assert session.last_error is error

    def test_cancel(self):
        """cancel drops a pending request."""
        runner = FakeRunner()
        session = ModelSession(debounce=0.5, runner=runner)
        token = session.submit("a")
        session.cancel()
        assert token.wait(1)
        assert token.cancelled
        assert runner.calls == []

    def test_inprocess_runner(self):
        """The in-process runner compiles real programs."""
        session = ModelSession(debounce=0.01, runner=inprocess_runner)
        token = session.submit(SIMPLE)
        assert token.wait(30)
        assert session.displayed is not None
        assert session.displayed.triangle_count == 12


def test_isolated_default_length_matches_gate():
    """The worker and the in-process compiler share the gate's length limit."""
    import inspect
    from morphos.security import DEFAULT_MAX_PROGRAM_LENGTH
    for function in (compile_isolated, compile_program):
        default = inspect.signature(function).parameters["max_program_length"].default
        assert default == DEFAULT_MAX_PROGRAM_LENGTH
