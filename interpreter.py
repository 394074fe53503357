"""
Logo Interpreter - Pure Functional Style
Every statement maps an immutable interpreter state to a new one
Side effects (drawing) handled through the canvas at the boundary
"""

from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, replace
from concurrent.futures import ThreadPoolExecutor
import math
import sys

from nodes import (
    AExp, BExp, Statement, Constant, Variable, Sub, Div, Eq, Forward, Rotate,
    SetHeading, Sequence, Repeat, Function, Call, If, Stop
)
from parsing import create_parser
from rendering import Canvas, Point, RecordingCanvas
from error_handling import LogoRuntimeError


UNBOUND_VARIABLE_VALUE = 0
DEFAULT_MAX_REPEAT = 1_000_000
DEFAULT_MAX_CALL_DEPTH = 1000
# Python frames one procedure activation can use (call, body, sequence, block, if)
FRAMES_PER_CALL = 8
RECURSION_MARGIN = 200
MAX_RECURSION_LIMIT = 20_000


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, eq=False)
class Closure:
  """Procedure body bundled with the bindings visible where it was defined.

  fn_env contains the closure itself so the procedure can call itself.
  """
  name: str
  params: Tuple[str, ...]
  body: Statement
  arith_env: Dict[str, float]
  fn_env: Dict[str, 'Closure']

  def __repr__(self) -> str:
    params = "".join(f" :{p}" for p in self.params)
    return f"<procedure {self.name}{params}>"


@dataclass(frozen=True)
class LogoState:
  """Cursor plus environments; replaced, never mutated"""
  position: Point
  heading: float
  arith_env: Dict[str, float]
  fn_env: Dict[str, Closure]
  terminated: bool = False


def make_initial_state(position: Point = Point(0, 0), heading: float = 0) -> LogoState:
  """Create a state with empty environments"""
  return LogoState(position=position, heading=heading, arith_env={}, fn_env={})


def make_execution_context(debug: bool = False,
                           max_repeat: Optional[int] = DEFAULT_MAX_REPEAT,
                           max_call_depth: int = DEFAULT_MAX_CALL_DEPTH) -> Dict:
  """Create an execution context for limits and debug tracing"""
  return {
      'debug': debug,
      'max_repeat': max_repeat,
      'max_call_depth': max_call_depth,
      'depth': 0
  }


def ensure_recursion_headroom(max_call_depth: int) -> None:
  """Raise the interpreter recursion limit so max_call_depth activations fit.

  The limit is only ever raised, and never past MAX_RECURSION_LIMIT; deeper
  requests surface as LogoRuntimeError when the host runs out of frames.
  """
  wanted = min(max_call_depth * FRAMES_PER_CALL + RECURSION_MARGIN, MAX_RECURSION_LIMIT)
  if sys.getrecursionlimit() < wanted:
    sys.setrecursionlimit(wanted)


# ============================================================================
# EXPRESSIONS
# ============================================================================

def lookup_variable(env: Dict[str, float], name: str) -> float:
  """Unbound variables read as UNBOUND_VARIABLE_VALUE"""
  return env.get(name, UNBOUND_VARIABLE_VALUE)


def eval_aexp(expr: AExp, env: Dict[str, float]) -> float:
  """Evaluate an arithmetic expression against numeric bindings"""
  if isinstance(expr, Constant):
    return expr.value
  elif isinstance(expr, Variable):
    return lookup_variable(env, expr.name)
  elif isinstance(expr, Sub):
    return eval_aexp(expr.left, env) - eval_aexp(expr.right, env)
  elif isinstance(expr, Div):
    divisor = eval_aexp(expr.right, env)
    if divisor == 0:
      raise LogoRuntimeError("Division by zero", expr)
    return eval_aexp(expr.left, env) / divisor
  raise LogoRuntimeError(f"Unknown arithmetic expression: {expr!r}", expr)


def eval_bexp(expr: BExp, env: Dict[str, float]) -> bool:
  """Evaluate a boolean expression"""
  if isinstance(expr, Eq):
    return eval_aexp(expr.left, env) == eval_aexp(expr.right, env)
  raise LogoRuntimeError(f"Unknown boolean expression: {expr!r}", expr)


# ============================================================================
# STATEMENTS
# ============================================================================

def eval_statement(node: Statement, state: LogoState, canvas: Canvas,
                   context: Optional[Dict] = None) -> LogoState:
  """
  Evaluate a statement and return the resulting state.
  Drawing goes to canvas; state is never modified in place.
  """
  if context is None:
    context = make_execution_context()

  if context['debug']:
    print(f"Evaluating: {type(node).__name__}")

  if isinstance(node, Forward):
    return eval_forward(node, state, canvas, context)
  elif isinstance(node, Rotate):
    return replace(state, heading=state.heading + eval_aexp(node.degrees, state.arith_env))
  elif isinstance(node, SetHeading):
    return replace(state, heading=eval_aexp(node.degrees, state.arith_env))
  elif isinstance(node, Sequence):
    return eval_sequence(node, state, canvas, context)
  elif isinstance(node, Repeat):
    return eval_repeat(node, state, canvas, context)
  elif isinstance(node, Function):
    return eval_function_def(node, state, canvas, context)
  elif isinstance(node, Call):
    return eval_call(node, state, canvas, context)
  elif isinstance(node, If):
    return eval_if(node, state, canvas, context)
  elif isinstance(node, Stop):
    return replace(state, terminated=True)
  raise LogoRuntimeError(f"Unknown statement: {node!r}", node)


def eval_forward(node: Forward, state: LogoState, canvas: Canvas, context: Dict) -> LogoState:
  """Move along the heading (0 points up the screen) and draw the segment"""
  pixels = eval_aexp(node.pixels, state.arith_env)
  radians = math.radians(state.heading)
  start = state.position
  end = Point(start.x + pixels * math.sin(radians), start.y - pixels * math.cos(radians))
  canvas.draw_line(start, end)
  return replace(state, position=end, terminated=False)


def eval_sequence(node: Sequence, state: LogoState, canvas: Canvas, context: Dict) -> LogoState:
  """Evaluate first then second, skipping the rest once stop has fired"""
  current: Statement = node
  # Walk the right spine iteratively so long programs do not nest Python frames
  while isinstance(current, Sequence):
    state = eval_statement(current.first, state, canvas, context)
    if state.terminated:
      return state
    current = current.second
  return eval_statement(current, state, canvas, context)


def eval_repeat(node: Repeat, state: LogoState, canvas: Canvas, context: Dict) -> LogoState:
  """Run body a fixed number of times, counted once on entry"""
  times = eval_aexp(node.times, state.arith_env)
  max_repeat = context.get('max_repeat')
  if max_repeat is not None and times > max_repeat:
    raise LogoRuntimeError(f"Repeat count {times} exceeds the limit of {max_repeat}", node)

  current = state
  iteration = 0
  while iteration < times:
    current = eval_statement(node.body, current, canvas, context)
    iteration += 1
    if current.terminated:
      break
  return current


def eval_function_def(node: Function, state: LogoState, canvas: Canvas, context: Dict) -> LogoState:
  """Bind a closure that can see itself and everything defined so far"""
  fn_env = dict(state.fn_env)
  closure = Closure(node.name, node.params, node.body, dict(state.arith_env), fn_env)
  fn_env[node.name] = closure
  return replace(state, fn_env=fn_env)


def eval_call(node: Call, state: LogoState, canvas: Canvas, context: Dict) -> LogoState:
  """
  Call a procedure. Arguments are evaluated in the caller's bindings; the
  body runs with the closure's environments. Cursor changes and stop
  propagate back, the caller's bindings are restored.
  """
  closure = state.fn_env.get(node.name)
  if closure is None:
    raise LogoRuntimeError(f"Undefined procedure: {node.name}", node)

  depth = context['depth']
  if depth >= context['max_call_depth']:
    raise LogoRuntimeError(
        f"Maximum procedure call depth exceeded ({context['max_call_depth']}) in {node.name}", node)

  values = [eval_aexp(arg, state.arith_env) for arg in node.args]
  # Extra arguments are dropped, missing ones stay unbound
  call_env = {**closure.arith_env, **dict(zip(closure.params, values))}

  try:
    called = eval_statement(
        closure.body,
        replace(state, arith_env=call_env, fn_env=closure.fn_env),
        canvas,
        {**context, 'depth': depth + 1}
    )
  except RecursionError:
    raise LogoRuntimeError(
        f"Maximum procedure call depth exceeded (host recursion limit) in {node.name}", node)
  return replace(called, arith_env=state.arith_env, fn_env=state.fn_env)


def eval_if(node: If, state: LogoState, canvas: Canvas, context: Dict) -> LogoState:
  if eval_bexp(node.condition, state.arith_env):
    return eval_statement(node.body, state, canvas, context)
  return replace(state, terminated=False)


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def run_program(program: Union[str, Statement], canvas: Canvas,
                state: Optional[LogoState] = None,
                context: Optional[Dict] = None) -> LogoState:
  """
  Parse (when given text) and evaluate a program.
  Segments are buffered and only reach canvas if evaluation succeeds.
  """
  if context is None:
    context = make_execution_context()
  if state is None:
    state = make_initial_state()
  if isinstance(program, str):
    program = create_parser(context['debug']).parse_string(program)

  ensure_recursion_headroom(context['max_call_depth'])
  buffer = RecordingCanvas()
  try:
    final_state = eval_statement(program, state, buffer, context)
  except RecursionError:
    raise LogoRuntimeError("Program nested too deeply to evaluate", program)
  buffer.replay(canvas)
  return final_state


def run_programs(programs: List[Union[str, Statement]], canvas: Canvas,
                 states: Optional[List[LogoState]] = None,
                 context: Optional[Dict] = None,
                 max_workers: Optional[int] = None) -> List[LogoState]:
  """Evaluate independent programs concurrently; results keep input order"""
  if states is None:
    states = [make_initial_state() for _ in programs]
  if len(states) != len(programs):
    raise ValueError("run_programs needs one initial state per program")

  with ThreadPoolExecutor(max_workers=max_workers) as executor:
    futures = [
        executor.submit(run_program, program, canvas, state, context)
        for program, state in zip(programs, states)
    ]
    return [future.result() for future in futures]


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

class LogoInterpreter:
  """Interpreter bound to one execution context"""

  def __init__(self, debug: bool = False, max_repeat: Optional[int] = DEFAULT_MAX_REPEAT,
               max_call_depth: int = DEFAULT_MAX_CALL_DEPTH):
    self.debug = debug
    self.context = make_execution_context(debug, max_repeat, max_call_depth)

  def run(self, program: Union[str, Statement], canvas: Canvas,
          state: Optional[LogoState] = None) -> LogoState:
    return run_program(program, canvas, state, self.context)

  def run_many(self, programs: List[Union[str, Statement]], canvas: Canvas,
               max_workers: Optional[int] = None) -> List[LogoState]:
    return run_programs(programs, canvas, context=self.context, max_workers=max_workers)

  def evaluate(self, node: Statement, state: LogoState, canvas: Canvas) -> LogoState:
    """Evaluate a single statement directly, drawing as it goes"""
    ensure_recursion_headroom(self.context['max_call_depth'])
    return eval_statement(node, state, canvas, self.context)


def create_interpreter(debug: bool = False, **limits: Any) -> LogoInterpreter:
  """Factory function returning an interpreter"""
  return LogoInterpreter(debug=debug, **limits)


def create_debug_interpreter(**limits: Any) -> LogoInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True, **limits)
