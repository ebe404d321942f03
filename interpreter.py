"""
Parley Interpreter - Cooperative Actor Scheduler
Values, environments and actors are plain dictionaries built by make_* functions.
The Vm is the only stateful object: it owns every actor and advances them in rounds.
"""

import sys
from collections import deque
from typing import Callable, Dict, List, Optional, Tuple

from semantics import format_statement, statement_receive_count


ROOT_HANDLE = 0


# ============================================================================
# ERRORS
# ============================================================================

class ParleyRuntimeError(Exception):
  """Base class for every error a run_statement call can surface"""

  def __init__(self, message: str):
    self.message = message
    super().__init__(message)


class SendToNonActor(ParleyRuntimeError):
  def __init__(self):
    super().__init__("tried to send message to non-actor")


class UnboundVariable(ParleyRuntimeError):
  def __init__(self, name: str):
    self.name = name
    super().__init__(f"unbound variable: `{name}`")


class SpawningNonBlock(ParleyRuntimeError):
  def __init__(self):
    super().__init__("tried to spawn a non-block")


class RootDeadlock(ParleyRuntimeError):
  def __init__(self):
    super().__init__("root got into a deadlock")


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_value(value, type_name: str) -> Dict:
  """Create a runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_actor_handle(handle: int) -> Dict:
  return make_value(handle, "ActorHandle")


def make_symbol(name: str) -> Dict:
  return make_value(sys.intern(name), "Symbol")


def make_closure(closure_env: Dict, body: Tuple[Dict, ...]) -> Dict:
  """A block that has been evaluated but not run; env is captured by reference"""
  return {
      'value': body,
      'type': "Closure",
      'closure_env': closure_env
  }


def make_runtime_env(parent: Optional[Dict] = None, bindings: Optional[Dict] = None) -> Dict:
  """Create a scope; the parent link is fixed, the bindings table may grow"""
  return {
      'parent': parent,
      'bindings': bindings if bindings is not None else {}
  }


def make_actor(code: Tuple[Dict, ...] = (), env: Optional[Dict] = None) -> Dict:
  """Create an actor positioned at the start of its code with an empty mailbox"""
  return {
      'code': tuple(code),
      'position': 0,
      'env': env if env is not None else make_runtime_env(),
      'mailbox': deque()
  }


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def env_bind_value(env: Dict, name: str, value: Dict) -> None:
  """Bind name in the innermost scope, visible to closures that captured it"""
  env['bindings'][name] = value


def env_lookup_value(env: Dict, name: str) -> Dict:
  """Look up a value in the environment chain"""
  scope = env
  while scope is not None:
    if name in scope['bindings']:
      return scope['bindings'][name]
    scope = scope['parent']
  raise UnboundVariable(name)


# ============================================================================
# VALUES
# ============================================================================

def show_value(value: Dict) -> str:
  """Render a value for display"""
  if value['type'] == "ActorHandle":
    return f"<actor {value['value']}>"
  elif value['type'] == "Symbol":
    return f"'{value['value']}"
  elif value['type'] == "Closure":
    return "<closure ...>"
  return f"<{value['type']}>"


def is_actor_handle(value: Dict) -> bool:
  return value['type'] == "ActorHandle"


# ============================================================================
# ACTOR OPERATIONS
# ============================================================================

def actor_is_completed(actor: Dict) -> bool:
  return actor['position'] >= len(actor['code'])


def actor_next_statement(actor: Dict) -> Optional[Dict]:
  if actor_is_completed(actor):
    return None
  return actor['code'][actor['position']]


def eval_expr(expr: Dict, actor: Dict, spawner: Callable[[Dict], Dict]) -> Dict:
  """Evaluate an expression inside an actor.

  spawner registers a freshly built actor and returns its handle value.
  """
  node_type = expr['type']

  if node_type == "VAR":
    return env_lookup_value(actor['env'], expr['value'])

  elif node_type == "BLOCK":
    return make_closure(actor['env'], expr['children'])

  elif node_type == "RECEIVE":
    # The scheduler only runs a statement once its receives are queued
    if not actor['mailbox']:
      raise RuntimeError("cannot receive: mailbox is empty")
    return actor['mailbox'].popleft()

  elif node_type == "SPAWN":
    body = eval_expr(expr["children"][0], actor, spawner)
    if body['type'] != "Closure":
      raise SpawningNonBlock()
    env = make_runtime_env(parent=body['closure_env'])
    return spawner(make_actor(body['value'], env))

  elif node_type == "SYMBOL":
    return make_symbol(expr['value'])

  elif node_type == "ROOT":
    return make_actor_handle(ROOT_HANDLE)

  raise ValueError(f"Unknown expression type: {node_type}")


# ============================================================================
# SCHEDULER
# ============================================================================

class Vm:
  """Round-based scheduler for every actor of a program.

  Each handle lives in exactly one of active_actors / parked_actors between
  rounds. Actors spawned during a round wait in spawn_list and only join
  active_actors once the round is over.
  """

  def __init__(self, debug: bool = False):
    self.debug = debug
    self.next_handle = 1
    self.active_actors: Dict[int, Dict] = {}
    self.parked_actors: Dict[int, Dict] = {ROOT_HANDLE: make_actor()}
    self.spawn_list: List[Tuple[int, Dict]] = []
    self.rounds = 0

  def _log(self, message: str) -> None:
    if self.debug:
      print(f"DEBUG: {message}")

  def _spawn(self, actor: Dict) -> Dict:
    handle = self.next_handle
    self.next_handle += 1
    self.spawn_list.append((handle, actor))
    self._log(f"spawned actor {handle}")
    return make_actor_handle(handle)

  def run_step(self, handle: int) -> None:
    """Give one actor a single step: park it, run one statement, or do nothing"""
    actor = self.active_actors.get(handle)
    if actor is None:
      return

    stmt = actor_next_statement(actor)
    if stmt is None:
      return

    if statement_receive_count(stmt) > len(actor['mailbox']):
      del self.active_actors[handle]
      self.parked_actors[handle] = actor
      self._log(f"parked actor {handle} at `{format_statement(stmt)}`")
      return

    self._log(f"actor {handle} runs `{format_statement(stmt)}`")

    node_type = stmt['type']
    if node_type == "BIND":
      value = eval_expr(stmt['children'][0], actor, self._spawn)
      env_bind_value(actor['env'], stmt['value'], value)
      actor['position'] += 1

    elif node_type == "EXPR":
      eval_expr(stmt['children'][0], actor, self._spawn)
      actor['position'] += 1

    elif node_type == "SEND":
      target_expr, message_expr = stmt['children']
      target = eval_expr(target_expr, actor, self._spawn)
      message = eval_expr(message_expr, actor, self._spawn)
      if not is_actor_handle(target):
        raise SendToNonActor()
      actor['position'] += 1
      self.send_to_actor(target['value'], message)

    else:
      raise ValueError(f"Unknown statement type: {node_type}")

  def send_to_actor(self, handle: int, value: Dict) -> None:
    """Queue a message; a parked recipient is promoted without rechecking its needs"""
    if handle in self.active_actors:
      self.active_actors[handle]['mailbox'].append(value)
    elif handle in self.parked_actors:
      actor = self.parked_actors.pop(handle)
      actor['mailbox'].append(value)
      self.active_actors[handle] = actor
      self._log(f"promoted actor {handle} on delivery of {show_value(value)}")
    else:
      self._log(f"dropped {show_value(value)} for missing actor {handle}")

  def step_all(self) -> None:
    """Run one round over the actors that were active when it started"""
    self.rounds += 1
    handles = list(self.active_actors)
    self._log(f"round {self.rounds}: stepping {handles}")

    for handle in handles:
      self.run_step(handle)

    for handle, actor in self.spawn_list:
      self.active_actors[handle] = actor
    self.spawn_list = []

    self.active_actors = {
        h: a for h, a in self.active_actors.items()
        if h == ROOT_HANDLE or not actor_is_completed(a)
    }
    self.parked_actors = {
        h: a for h, a in self.parked_actors.items()
        if h == ROOT_HANDLE or not actor_is_completed(a)
    }

  def _remove_root(self) -> Dict:
    if ROOT_HANDLE in self.active_actors:
      return self.active_actors.pop(ROOT_HANDLE)
    return self.parked_actors.pop(ROOT_HANDLE)

  def _root(self) -> Dict:
    if ROOT_HANDLE in self.active_actors:
      return self.active_actors[ROOT_HANDLE]
    return self.parked_actors[ROOT_HANDLE]

  def is_done(self) -> bool:
    if not self.active_actors:
      return True
    elif len(self.active_actors) > 1:
      return False
    elif ROOT_HANDLE in self.active_actors:
      return actor_is_completed(self.active_actors[ROOT_HANDLE])
    return False

  def run_statement(self, stmt: Dict) -> None:
    """Load stmt into root and run rounds until the program quiesces"""
    root = self._remove_root()
    root['code'] = (stmt,)
    root['position'] = 0
    self.active_actors[ROOT_HANDLE] = root

    while not self.is_done():
      self.step_all()

    if not actor_is_completed(self._root()):
      raise RootDeadlock()

  def run_program(self, stmts: List[Dict],
                  on_receive: Optional[Callable[[Dict], None]] = None) -> List[Dict]:
    """Run statements in order, draining root's mailbox after each one"""
    received = []
    for stmt in stmts:
      self.run_statement(stmt)
      value = self.receive()
      while value is not None:
        received.append(value)
        if on_receive is not None:
          on_receive(value)
        value = self.receive()
    return received

  def receive(self) -> Optional[Dict]:
    """Pop the next value root has received, if any"""
    mailbox = self._root()['mailbox']
    if mailbox:
      return mailbox.popleft()
    return None

  # ==========================================================================
  # INSPECTION
  # ==========================================================================

  def actor_states(self) -> Dict[int, Tuple[str, int, int, int]]:
    """handle -> (state, position, code length, mailbox size)"""
    states = {}
    for state, table in (("active", self.active_actors), ("parked", self.parked_actors)):
      for handle, actor in table.items():
        states[handle] = (state, actor['position'], len(actor['code']), len(actor['mailbox']))
    return dict(sorted(states.items()))

  def root_bindings(self) -> Dict[str, Dict]:
    return dict(self._root()['env']['bindings'])


# ============================================================================
# FACTORY FUNCTIONS (for main.py)
# ============================================================================

def create_vm(debug: bool = False) -> Vm:
  """Factory function returning a fresh VM holding only the root actor"""
  return Vm(debug=debug)


def create_debug_vm() -> Vm:
  """Factory function returning a VM that traces scheduling"""
  return create_vm(debug=True)
