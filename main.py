"""
Parley command line: run scripts, inspect them, or talk to a live VM
"""

import os
import sys
import atexit
import argparse

try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import ParleyParseError
from parsing import create_parser, create_debug_parser, pretty_print_cst
from semantics import create_analyzer, create_debug_analyzer, format_statement, statement_receive_count, ParleySemanticsError
from interpreter import create_vm, create_debug_vm, show_value, ParleyRuntimeError


VERSION = "Parley v0.1.0"
HISTORY_FILE = "~/.parley_history"
COMPLETIONS = ("let", "send", "spawn", "receive", "root",
               ":parse", ":analyze", ":env", ":actors", ":help", "exit.")

ERROR_LABELS = (
    (ParleyParseError, "Parse error"),
    (ParleySemanticsError, "Semantics error"),
    (ParleyRuntimeError, "Runtime error"),
)


def create_arg_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
      prog='parley',
      description='Run Parley actor scripts or start a REPL. '
                  'With no arguments an interactive session starts.')
  parser.add_argument('script', nargs='?', help='script to run')
  parser.add_argument('-i', '--interactive', action='store_true', help='start the REPL')
  mode = parser.add_mutually_exclusive_group()
  mode.add_argument('--parse', action='store_true', help='print the CST of each statement and stop')
  mode.add_argument('--analyze', action='store_true', help='print each statement with its receive count and stop')
  parser.add_argument('--debug', action='store_true', help='trace parser, analyzer and scheduler')
  parser.add_argument('--version', action='version', version=VERSION)
  return parser


def create_pipeline(debug: bool = False):
  """(parser, analyzer, vm) sharing one debug setting"""
  if debug:
    return create_debug_parser(), create_debug_analyzer(), create_debug_vm()
  return create_parser(), create_analyzer(), create_vm()


def describe_error(error: Exception) -> str:
  for error_type, label in ERROR_LABELS:
    if isinstance(error, error_type):
      text = error.message if isinstance(error, ParleyRuntimeError) else str(error)
      return text if text.startswith(label) else f"{label}: {text}"
  return str(error)


def fail(script_path: str, error: Exception) -> None:
  print(f"{script_path}: {describe_error(error)}")
  sys.exit(1)


def print_received(value) -> None:
  print(f"Received: {show_value(value)}")


def format_analyzed(stmt) -> str:
  return f"[{stmt['type']}, needs {statement_receive_count(stmt)}] {format_statement(stmt)}"


def parse_file(script_path: str, debug: bool = False) -> None:
  """--parse: show the CST of every top-level statement"""
  parser, _, _ = create_pipeline(debug)
  try:
    nodes = parser.parse_file(script_path)
  except ParleyParseError as e:
    fail(script_path, e)
  print(f"Parsed {len(nodes)} top-level statements from {script_path}")
  for number, node in enumerate(nodes, 1):
    print(f"--- {number}")
    print(pretty_print_cst(node))


def analyze_file(script_path: str, debug: bool = False) -> None:
  """--analyze: show each statement as the VM will see it"""
  parser, analyzer, _ = create_pipeline(debug)
  try:
    statements = analyzer.analyze(parser.parse_file(script_path))
  except (ParleyParseError, ParleySemanticsError) as e:
    fail(script_path, e)
  print(f"Analyzed {len(statements)} top-level statements from {script_path}")
  for number, stmt in enumerate(statements, 1):
    print(f"{number:4d}: {format_analyzed(stmt)}")


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a script, printing what root receives after each statement"""
  parser, analyzer, vm = create_pipeline(debug)
  try:
    statements = analyzer.analyze(parser.parse_file(script_path))
    vm.run_program(statements, on_receive=print_received)
  except (ParleyParseError, ParleySemanticsError) as e:
    fail(script_path, e)
  except ParleyRuntimeError as e:
    if debug:
      print(f"DEBUG: actors after {vm.rounds} rounds: {vm.actor_states()}")
    fail(script_path, e)


def setup_readline() -> None:
  if not READLINE_AVAILABLE:
    return
  history = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history)
  except OSError:
    pass
  readline.set_history_length(1000)
  readline.set_completer(
      lambda text, state: ([word for word in COMPLETIONS if word.startswith(text)] + [None])[state])
  readline.parse_and_bind("tab: complete")
  atexit.register(readline.write_history_file, history)


# ============================================================================
# REPL COMMANDS
# ============================================================================

def show_parse(arg, parser, analyzer, vm) -> None:
  print(pretty_print_cst(parser.parse_statement(arg)))


def show_analysis(arg, parser, analyzer, vm) -> None:
  stmt = analyzer.analyze_statement(parser.parse_statement(arg))
  print(format_analyzed(stmt))
  print(f"Receive count: {statement_receive_count(stmt)}")


def show_env(arg, parser, analyzer, vm) -> None:
  bindings = vm.root_bindings()
  for name, value in bindings.items():
    print(f"  {name} = {show_value(value)}")
  if not bindings:
    print("  (no bindings)")


def show_actors(arg, parser, analyzer, vm) -> None:
  for handle, (state, position, length, queued) in vm.actor_states().items():
    print(f"  {handle}: {state}, at {position}/{length}, {queued} queued")


def show_help(arg, parser, analyzer, vm) -> None:
  for name, (_, usage) in REPL_COMMANDS.items():
    print(f"  {name:<10} {usage}")
  print("  exit.      leave the REPL")
  print("Anything else is run as Parley statements against the same VM.")


REPL_COMMANDS = {
    ":parse": (show_parse, "<stmt>  show the CST"),
    ":analyze": (show_analysis, "<stmt>  show the statement and its receive count"),
    ":env": (show_env, "root's bindings"),
    ":actors": (show_actors, "every actor with its position and queued messages"),
    ":help": (show_help, "this list"),
}


def run_repl_command(code: str, parser, analyzer, vm) -> bool:
  """Run a ':' command; False when code names no known command"""
  name, _, arg = code.strip().partition(" ")
  if name not in REPL_COMMANDS:
    return False
  try:
    REPL_COMMANDS[name][0](arg.strip(), parser, analyzer, vm)
  except (ParleyParseError, ParleySemanticsError) as e:
    print(describe_error(e))
  return True


def run_interactive_mode(debug: bool = False) -> None:
  """REPL over one long-lived VM; errors are reported and the session goes on"""
  print(f"{VERSION} interactive - ':help' for commands, 'exit.' to quit")
  setup_readline()
  parser, analyzer, vm = create_pipeline(debug)

  while True:
    try:
      code = input("parley> ").strip()
    except (KeyboardInterrupt, EOFError):
      print()
      break

    if code == "exit.":
      break
    if not code or run_repl_command(code, parser, analyzer, vm):
      continue

    try:
      vm.run_program(analyzer.analyze(parser.parse_string(code)), on_receive=print_received)
    except (ParleyParseError, ParleySemanticsError, ParleyRuntimeError) as e:
      print(describe_error(e))


def main() -> None:
  args = create_arg_parser().parse_args()

  if args.script and not args.interactive:
    if not os.path.isfile(args.script):
      print(f"parley: no such script: {args.script}")
      sys.exit(1)
    if args.parse:
      parse_file(args.script, args.debug)
    elif args.analyze:
      analyze_file(args.script, args.debug)
    else:
      run_script_file(args.script, args.debug)
  else:
    run_interactive_mode(args.debug)


if __name__ == "__main__":
  main()
