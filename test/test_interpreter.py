"""
Evaluation tests for the Logo interpreter
"""

import math
import sys
import pytest
from parsing import create_parser
from interpreter import (
  eval_statement, eval_aexp, eval_bexp, run_program, make_initial_state,
  make_execution_context, create_interpreter, create_debug_interpreter,
  Closure, UNBOUND_VARIABLE_VALUE, DEFAULT_MAX_CALL_DEPTH, FRAMES_PER_CALL,
  ensure_recursion_headroom
)
from rendering import Point, RecordingCanvas
from error_handling import LogoRuntimeError
from nodes import (
  Constant, Variable, Sub, Div, Eq, Forward, Rotate, SetHeading, Sequence,
  Repeat, Function, Call, If, Stop
)


def approx_segments(segments):
  return [((pytest.approx(a.x, abs=1e-9), pytest.approx(a.y, abs=1e-9)),
           (pytest.approx(b.x, abs=1e-9), pytest.approx(b.y, abs=1e-9)))
          for a, b in segments]


def as_tuples(segments):
  return [((a.x, a.y), (b.x, b.y)) for a, b in segments]


class CountingCanvas(RecordingCanvas):
  """Recording canvas that also counts draw requests"""

  def __init__(self):
    super().__init__()
    self.calls = 0

  def draw_line(self, start, end):
    self.calls += 1
    super().draw_line(start, end)


def run(source, canvas, state=None):
  program = create_parser().parse_string(source)
  return eval_statement(program, state or make_initial_state(), canvas)


class TestArithmetic:
  """AExp and BExp evaluation"""

  def test_constant_and_variable(self):
    assert eval_aexp(Constant(5), {}) == 5
    assert eval_aexp(Variable("x"), {"x": 3}) == 3

  def test_unbound_variable_reads_zero(self):
    assert UNBOUND_VARIABLE_VALUE == 0
    assert eval_aexp(Variable("missing"), {}) == 0

  def test_sub_and_div(self):
    assert eval_aexp(Sub(Constant(10), Constant(4)), {}) == 6
    assert eval_aexp(Div(Constant(7), Constant(2)), {}) == 3.5

  def test_division_by_zero_is_an_error(self):
    with pytest.raises(LogoRuntimeError, match="Division by zero"):
      eval_aexp(Div(Constant(1), Variable("zero")), {})

  def test_equality(self):
    assert eval_bexp(Eq(Div(Constant(4), Constant(2)), Constant(2)), {}) is True
    assert eval_bexp(Eq(Variable("n"), Constant(1)), {}) is False


class TestCursorCommands:
  """Forward, Rotate, SetHeading"""

  def test_forward_draws_along_heading(self, canvas):
    state = eval_statement(Forward(Constant(100)), make_initial_state(), canvas)
    assert as_tuples(canvas.segments) == approx_segments([(Point(0, 0), Point(0, -100))])
    assert state.position.y == pytest.approx(-100)
    assert state.terminated is False

  def test_rotate_accumulates(self, canvas):
    state = make_initial_state(heading=30)
    state = eval_statement(Rotate(Constant(90)), state, canvas)
    assert state.heading == 120
    assert canvas.segments == []

  def test_set_heading(self, canvas):
    state = eval_statement(SetHeading(Constant(45)), make_initial_state(heading=200), canvas)
    assert state.heading == 45

  def test_forward_then_turn_scenario(self, canvas):
    run("fd 100 rt 90 fd 50", canvas)
    assert as_tuples(canvas.segments) == approx_segments([
      (Point(0, 0), Point(0, -100)),
      (Point(0, -100), Point(50, -100)),
    ])

  def test_square_returns_to_start_without_normalizing_heading(self, canvas):
    state = run("repeat 4 [fd 10 rt 90]", canvas)
    assert len(canvas.segments) == 4
    assert state.position.x == pytest.approx(0, abs=1e-9)
    assert state.position.y == pytest.approx(0, abs=1e-9)
    assert state.heading == 360

  def test_state_is_not_mutated(self, canvas):
    start = make_initial_state()
    eval_statement(Sequence(Forward(Constant(5)), Rotate(Constant(5))), start, canvas)
    assert start == make_initial_state()


class TestSequencing:
  """Sequence and Stop"""

  def test_stop_sets_terminated_only(self, canvas):
    start = make_initial_state(Point(1, 2), 30)
    state = eval_statement(Stop(), start, canvas)
    assert state.terminated is True
    assert state.position == start.position
    assert state.heading == start.heading

  def test_sequence_short_circuits(self):
    canvas = CountingCanvas()
    program = Sequence(Sequence(Forward(Constant(1)), Stop()), Forward(Constant(2)))
    alone = eval_statement(Sequence(Forward(Constant(1)), Stop()), make_initial_state(), RecordingCanvas())
    state = eval_statement(program, make_initial_state(), canvas)
    assert canvas.calls == 1
    assert state == alone

  def test_stop_skips_remaining_siblings(self, canvas):
    state = run("fd 1 stop fd 2 fd 3", canvas)
    assert len(canvas.segments) == 1
    assert state.terminated is True

  def test_long_program_does_not_overflow(self, canvas):
    run(" ".join(["fd 1"] * 3000), canvas)
    assert len(canvas.segments) == 3000


class TestRepeat:
  """Repeat bound and early exit"""

  @pytest.mark.parametrize("times", [0, 1, 3, 7])
  def test_exact_count(self, times):
    canvas = CountingCanvas()
    eval_statement(Repeat(Constant(times), Forward(Constant(1))), make_initial_state(), canvas)
    assert canvas.calls == times

  def test_count_uses_entry_bindings(self, canvas):
    run("to poly :n repeat :n [fd 1 rt 360 / :n] end poly 5", canvas)
    assert len(canvas.segments) == 5

  def test_stop_ends_loop_early(self):
    canvas = CountingCanvas()
    program = Repeat(Constant(5), Sequence(Forward(Constant(1)), Stop()))
    state = eval_statement(program, make_initial_state(), canvas)
    assert canvas.calls == 1
    assert state.terminated is True

  def test_fractional_and_negative_counts(self):
    canvas = CountingCanvas()
    eval_statement(Repeat(Div(Constant(5), Constant(2)), Forward(Constant(1))), make_initial_state(), canvas)
    assert canvas.calls == 3
    eval_statement(Repeat(Sub(Constant(0), Constant(2)), Forward(Constant(1))), make_initial_state(), canvas)
    assert canvas.calls == 3

  def test_repeat_limit(self, canvas):
    context = make_execution_context(max_repeat=10)
    with pytest.raises(LogoRuntimeError, match="exceeds the limit"):
      eval_statement(Repeat(Constant(11), Stop()), make_initial_state(), canvas, context)


class TestProcedures:
  """Function definitions, calls and closures"""

  def test_definition_binds_closure(self, canvas):
    state = eval_statement(Function("f", ("a",), Stop()), make_initial_state(), canvas)
    closure = state.fn_env["f"]
    assert isinstance(closure, Closure)
    assert closure.params == ("a",)
    assert closure.fn_env["f"] is closure
    assert state.position == Point(0, 0)
    assert repr(closure) == "<procedure f :a>"

  def test_parameterless_procedure(self, canvas):
    run("to sq fd 10 rt 90 fd 10 rt 90 fd 10 rt 90 fd 10 rt 90 end sq", canvas)
    assert len(canvas.segments) == 4

  def test_arguments_evaluated_in_caller_environment(self, canvas):
    run("to line :len fd :len end to twice :x line :x line :x end twice 7", canvas)
    lengths = [abs(b.y - a.y) for a, b in canvas.segments]
    assert lengths == [pytest.approx(7), pytest.approx(7)]

  def test_extra_arguments_ignored_and_missing_read_zero(self, canvas):
    run("to f :a :b fd :a rt 90 fd :b end f 5 f 1 2 3", canvas)
    lengths = [math.hypot(b.x - a.x, b.y - a.y) for a, b in canvas.segments]
    assert lengths == [pytest.approx(5), pytest.approx(0), pytest.approx(1), pytest.approx(2)]

  def test_closure_isolation(self, canvas):
    start = run("to f :a fd :a end", canvas)
    after = eval_statement(Call("f", (Constant(3),)), start, canvas)
    assert after.arith_env == start.arith_env
    assert after.fn_env == start.fn_env
    assert after.position != start.position

  def test_definitions_inside_call_do_not_leak(self, canvas):
    state = run("to outer to inner fd 1 end inner end outer", canvas)
    assert set(state.fn_env) == {"outer"}
    assert len(canvas.segments) == 1

  def test_closure_captures_definition_time_procedures(self, canvas):
    # g is defined after f, so f cannot see it
    with pytest.raises(LogoRuntimeError, match="Undefined procedure: g"):
      run("to f g end to g fd 1 end f", canvas)

  def test_undefined_procedure_fails_fast(self, canvas):
    with pytest.raises(LogoRuntimeError) as exc_info:
      run("fd 1 nothing", canvas)
    assert exc_info.value.node == Call("nothing", ())

  def test_self_recursion(self, canvas):
    state = run("to f :n  if :n = 0 [stop]  fd :n  f :n-1  end f 5", canvas)
    lengths = [abs(b.y - a.y) for a, b in canvas.segments]
    assert lengths == [pytest.approx(n) for n in (5, 4, 3, 2, 1)]
    assert state.terminated is True

  def test_stop_inside_call_unwinds_caller(self, canvas):
    run("to halt stop end fd 1 halt fd 2", canvas)
    assert len(canvas.segments) == 1

  def test_call_depth_limit(self, canvas):
    context = make_execution_context(max_call_depth=20)
    program = create_parser().parse_string("to loop loop end loop")
    with pytest.raises(LogoRuntimeError, match="call depth"):
      eval_statement(program, make_initial_state(), canvas, context)

  @pytest.mark.parametrize("n", [100, 500])
  def test_default_depth_allows_deep_recursion(self, canvas, n):
    assert DEFAULT_MAX_CALL_DEPTH > n
    state = run_program(f"to f :n if :n = 0 [stop] fd :n f :n-1 end f {n}", canvas)
    assert len(canvas.segments) == n
    assert state.terminated is True

  def test_host_recursion_limit_becomes_runtime_error(self, canvas):
    context = make_execution_context(max_call_depth=100_000)
    with pytest.raises(LogoRuntimeError, match="Maximum procedure call depth exceeded"):
      run_program("to loop loop end loop", canvas, context=context)
    assert canvas.segments == []

  def test_recursion_headroom_only_grows(self):
    before = sys.getrecursionlimit()
    ensure_recursion_headroom(1)
    assert sys.getrecursionlimit() == before
    ensure_recursion_headroom(DEFAULT_MAX_CALL_DEPTH)
    assert sys.getrecursionlimit() >= DEFAULT_MAX_CALL_DEPTH * FRAMES_PER_CALL


class TestIf:
  """Conditional execution"""

  def test_true_branch_runs(self, canvas):
    run("if 2 = 2 fd 1", canvas)
    assert len(canvas.segments) == 1

  def test_false_branch_returns_state(self, canvas):
    start = make_initial_state(Point(3, 4), 10)
    state = eval_statement(If(Eq(Constant(1), Constant(2)), Forward(Constant(1))), start, canvas)
    assert state == start
    assert canvas.segments == []


class TestRunProgram:
  """Front-end evaluation"""

  def test_runtime_error_draws_nothing(self, canvas):
    with pytest.raises(LogoRuntimeError):
      run_program("fd 10 fd 10 / 0", canvas)
    assert canvas.segments == []

  def test_success_replays_segments(self, canvas):
    state = run_program("fd 10 rt 90 fd 10", canvas, make_initial_state(Point(100, 100)))
    assert len(canvas.segments) == 2
    assert state.position.x == pytest.approx(110)

  def test_interpreter_factory(self, canvas):
    interpreter = create_interpreter(max_repeat=2)
    with pytest.raises(LogoRuntimeError):
      interpreter.run("repeat 3 [fd 1]", canvas)
    assert interpreter.run("repeat 2 [fd 1]", canvas).terminated is False

  def test_debug_interpreter_traces(self, canvas, capsys):
    create_debug_interpreter().evaluate(Forward(Constant(1)), make_initial_state(), canvas)
    assert "Evaluating: Forward" in capsys.readouterr().out
