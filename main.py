"""
Logo Turtle Interpreter - Main Entry Point
Runs turtle-graphics programs and writes the drawing as SVG
"""

import sys
import argparse
from pathlib import Path
from dataclasses import replace
from typing import Optional, List

from parsing import create_parser, create_debug_parser, read_source, unparse, LogoParser
from nodes import pretty_print_ast, find_nodes_by_type, Function
from interpreter import (
    create_interpreter, make_initial_state, LogoInterpreter, LogoState,
    DEFAULT_MAX_REPEAT, DEFAULT_MAX_CALL_DEPTH
)
from rendering import (
    SvgCanvas, Point, DEFAULT_WIDTH, DEFAULT_HEIGHT, DEFAULT_LINE_WIDTH, DEFAULT_STROKE
)
from error_handling import LogoParseError, LogoRuntimeError


VERSION = 'logo-turtle v0.1.0'


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='logo',
      description='Logo turtle-graphics interpreter',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s square.logo                  # Run a script, write out.svg
  %(prog)s -e "repeat 4 [fd 100 rt 90]"  # Run literal source
  %(prog)s --parse square.logo          # Show the parsed AST
  %(prog)s -i                           # Interactive mode
        """
  )

  parser.add_argument('script', nargs='?', help='Logo script file to execute')
  parser.add_argument('-e', '--eval', dest='source', help='Program text to run instead of a file')
  parser.add_argument('-o', '--output', default='out.svg', help='SVG file to write (default: out.svg)')
  parser.add_argument('-i', '--interactive', action='store_true', help='Start interactive mode')
  parser.add_argument('--parse', action='store_true', help='Parse only and show the AST')
  parser.add_argument('--width', type=int, default=DEFAULT_WIDTH, help='Canvas width in pixels')
  parser.add_argument('--height', type=int, default=DEFAULT_HEIGHT, help='Canvas height in pixels')
  parser.add_argument('--line-width', type=float, default=DEFAULT_LINE_WIDTH, help='Stroke width')
  parser.add_argument('--stroke', default=DEFAULT_STROKE, help='Stroke colour')
  parser.add_argument('--start-x', type=float, help='Starting x (default: canvas centre)')
  parser.add_argument('--start-y', type=float, help='Starting y (default: canvas centre)')
  parser.add_argument('--heading', type=float, default=0, help='Starting heading in degrees')
  parser.add_argument('--max-repeat', type=int, default=DEFAULT_MAX_REPEAT,
                      help='Largest repeat count allowed')
  parser.add_argument('--max-call-depth', type=int, default=DEFAULT_MAX_CALL_DEPTH,
                      help='Deepest procedure nesting allowed')
  parser.add_argument('--debug', action='store_true', help='Enable debug output for all stages')
  parser.add_argument('--version', action='version', version=VERSION)

  return parser


def initial_state_from_args(args: argparse.Namespace) -> LogoState:
  start_x = args.width / 2 if args.start_x is None else args.start_x
  start_y = args.height / 2 if args.start_y is None else args.start_y
  return make_initial_state(Point(start_x, start_y), args.heading)


def canvas_from_args(args: argparse.Namespace) -> SvgCanvas:
  return SvgCanvas(args.width, args.height, args.line_width, args.stroke)


def interpreter_from_args(args: argparse.Namespace) -> LogoInterpreter:
  return create_interpreter(debug=args.debug, max_repeat=args.max_repeat,
                            max_call_depth=args.max_call_depth)


def show_parse(source: str, name: str, parser: LogoParser) -> None:
  """Parse source and show the AST and its canonical rendering"""
  program = parser.parse_string(source, name)
  procedures = [f.name for f in find_nodes_by_type(program, Function)]
  print(f"Parsed {name}:")
  print("=" * 50)
  print(pretty_print_ast(program), end='')
  print("=" * 50)
  if procedures:
    print(f"Procedures: {', '.join(procedures)}")
  print(f"Canonical: {unparse(program)}")


def run_source(source: str, name: str, args: argparse.Namespace) -> int:
  """Parse, evaluate and save one program; returns a process exit code"""
  parser = create_debug_parser() if args.debug else create_parser()
  try:
    if args.parse:
      show_parse(source, name, parser)
      return 0

    program = parser.parse_string(source, name)
    canvas = canvas_from_args(args)
    final_state = interpreter_from_args(args).run(program, canvas, initial_state_from_args(args))
    canvas.save(args.output)

    print(f"Drew {len(canvas.lines)} segments to {args.output}")
    if args.debug:
      print(f"Final position: ({final_state.position.x:.2f}, {final_state.position.y:.2f}), "
            f"heading {final_state.heading}")
    return 0

  except LogoParseError as e:
    print(f"Parse error in '{name}': {e}")
    return 1
  except LogoRuntimeError as e:
    print(f"Runtime error in '{name}': {e.message}")
    if e.node is not None and args.debug:
      print(f"  While evaluating: {e.node}")
    return 1
  except OSError as e:
    print(f"Error: cannot write '{args.output}': {e}")
    return 1


def run_interactive_mode(args: argparse.Namespace) -> None:
  """Evaluate one line at a time; cursor and procedures persist between lines"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  print()

  parser = create_debug_parser() if args.debug else create_parser()
  interpreter = interpreter_from_args(args)
  canvas = canvas_from_args(args)
  state = initial_state_from_args(args)

  while True:
    try:
      code = input("logo> ").strip()
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    if code == "exit":
      break
    if not code:
      continue

    if code == ":help":
      print("REPL Commands:")
      print("  :state   - Show cursor and procedures")
      print("  :save    - Write the drawing so far")
      print("  :help    - Show this help")
      print("  exit     - Exit REPL")
      continue

    if code == ":state":
      print(f"  position = ({state.position.x:.2f}, {state.position.y:.2f})")
      print(f"  heading  = {state.heading}")
      print(f"  procedures = {', '.join(sorted(state.fn_env)) or '(none)'}")
      continue

    if code == ":save":
      canvas.save(args.output)
      print(f"Saved {len(canvas.lines)} segments to {args.output}")
      continue

    try:
      program = parser.parse_string(code, "<repl>")
      state = interpreter.run(program, canvas, state)
      # stop only ends the line it appears in
      state = replace(state, terminated=False)
    except LogoParseError as e:
      print(f"Parse error: {e}")
    except LogoRuntimeError as e:
      print(f"Runtime error: {e.message}")


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.source is not None:
    return run_source(args.source, "<eval>", args)

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      return 1
    try:
      source = read_source(args.script)
    except LogoParseError as e:
      print(f"Error: {e}")
      return 1
    return run_source(source, args.script, args)

  if args.interactive:
    run_interactive_mode(args)
    return 0

  arg_parser.print_help()
  return 0


if __name__ == "__main__":
  sys.exit(main())
