"""
Parley Semantics Analysis - Pure Functional Style
Turns CST nodes into the immutable statement/expression model the VM runs
"""

import sys
from typing import Any, Dict, List, Optional, Tuple
from parsing import CSTNode, SourceSpan


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_ast_node(node_type: str, value: Any = None, children: Tuple[Dict, ...] = (),
                  span: Optional[SourceSpan] = None) -> Dict:
  """Create an AST node dictionary; children are kept as a tuple"""
  return {
      'type': node_type,
      'value': value,
      'children': tuple(children),
      'span': span
  }


# Expressions

def make_var(name: str, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("VAR", name, (), span)


def make_block(statements, span: Optional[SourceSpan] = None) -> Dict:
  """Block body is shared by every closure built from it"""
  return make_ast_node("BLOCK", None, tuple(statements), span)


def make_spawn(body: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("SPAWN", None, (body,), span)


def make_receive(span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("RECEIVE", None, (), span)


def make_symbol_expr(name: str, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("SYMBOL", sys.intern(name), (), span)


def make_root(span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("ROOT", None, (), span)


# Statements

def make_bind(name: str, expr: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("BIND", sys.intern(name), (expr,), span)


def make_send(target: Dict, message: Dict, span: Optional[SourceSpan] = None) -> Dict:
  """Target is evaluated before the message"""
  return make_ast_node("SEND", None, (target, message), span)


def make_expr_statement(expr: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("EXPR", None, (expr,), span)


# ============================================================================
# RECEIVE COUNT
# ============================================================================

def expr_receive_count(expr: Dict) -> int:
  """Receives an expression needs from the current actor's mailbox.

  Block and spawn bodies are opaque: their receives run later, in
  whichever actor ends up executing them.
  """
  return 1 if expr['type'] == "RECEIVE" else 0


def statement_receive_count(stmt: Dict) -> int:
  """Messages that must be queued before the statement may run"""
  return sum(expr_receive_count(expr) for expr in stmt['children'])


# ============================================================================
# FORMATTING
# ============================================================================

def format_expr(expr: Dict) -> str:
  """Render an expression back to surface syntax"""
  node_type = expr['type']
  if node_type == "VAR":
    return expr['value']
  elif node_type == "SYMBOL":
    return f"'{expr['value']}"
  elif node_type == "RECEIVE":
    return "receive"
  elif node_type == "ROOT":
    return "root"
  elif node_type == "SPAWN":
    return f"spawn {format_expr(expr['children'][0])}"
  elif node_type == "BLOCK":
    if not expr['children']:
      return "{}"
    body = "; ".join(format_statement(stmt) for stmt in expr['children'])
    return "{ " + body + " }"
  raise ParleySemanticsError(f"Not an expression: {node_type}", expr.get('span'))


def format_statement(stmt: Dict) -> str:
  """Render a statement back to surface syntax"""
  node_type = stmt['type']
  if node_type == "BIND":
    return f"let {stmt['value']} = {format_expr(stmt['children'][0])}"
  elif node_type == "SEND":
    target, message = stmt['children']
    return f"send {format_expr(target)} {format_expr(message)}"
  elif node_type == "EXPR":
    return format_expr(stmt['children'][0])
  raise ParleySemanticsError(f"Not a statement: {node_type}", stmt.get('span'))


# ============================================================================
# CST NODE ANALYSIS
# ============================================================================

def analyze_expression(cst_node: CSTNode, debug: bool = False) -> Dict:
  """Analyze a CST node in expression position"""
  if debug:
    print(f"DEBUG: Analyzing expression: {cst_node.type} with value: {cst_node.value}")

  node_type = cst_node.type
  span = cst_node.span

  if node_type == "IDENTIFIER":
    return make_var(cst_node.value, span)
  elif node_type == "SYMBOL":
    return make_symbol_expr(cst_node.value, span)
  elif node_type == "RECEIVE":
    return make_receive(span)
  elif node_type == "ROOT":
    return make_root(span)
  elif node_type == "SPAWN":
    if len(cst_node.children) != 1:
      raise ParleySemanticsError("spawn takes exactly one expression", span)
    return make_spawn(analyze_expression(cst_node.children[0], debug), span)
  elif node_type == "BLOCK":
    return make_block([analyze_statement(child, debug) for child in cst_node.children], span)
  elif node_type in ("LET", "SEND"):
    raise ParleySemanticsError(f"{node_type.lower()} statement used where an expression is expected", span)

  raise ParleySemanticsError(f"Unknown node type: {node_type}", span)


def analyze_statement(cst_node: CSTNode, debug: bool = False) -> Dict:
  """Analyze a CST node in statement position; bare expressions become EXPR"""
  if debug:
    print(f"DEBUG: Analyzing statement: {cst_node.type} with value: {cst_node.value}")

  span = cst_node.span

  if cst_node.type == "LET":
    if not cst_node.value:
      raise ParleySemanticsError("let binding missing name", span)
    if len(cst_node.children) != 1:
      raise ParleySemanticsError("let binding needs exactly one expression", span)
    return make_bind(cst_node.value, analyze_expression(cst_node.children[0], debug), span)
  elif cst_node.type == "SEND":
    if len(cst_node.children) != 2:
      raise ParleySemanticsError("send needs a target and a message", span)
    target, message = cst_node.children
    return make_send(analyze_expression(target, debug), analyze_expression(message, debug), span)

  return make_expr_statement(analyze_expression(cst_node, debug), span)


# ============================================================================
# MAIN ANALYSIS FUNCTION
# ============================================================================

def analyze_program(cst_nodes: List[CSTNode], debug: bool = False) -> List[Dict]:
  """Analyze a program (list of top-level CST nodes) into statements"""
  statements = [analyze_statement(cst_node, debug) for cst_node in cst_nodes]
  if debug:
    print(f"DEBUG: Analyzed {len(statements)} statements")
  return statements


# ============================================================================
# EXCEPTION CLASS
# ============================================================================

class ParleySemanticsError(Exception):
  """Parley semantics analysis error"""

  def __init__(self, message: str, span: Optional[SourceSpan] = None):
    self.message = message
    self.span = span
    super().__init__(self._format_error())

  def _format_error(self) -> str:
    if self.span:
      return f"Semantics error at {self.span}: {self.message}"
    return f"Semantics error: {self.message}"


# ============================================================================
# FACTORY FUNCTIONS (for main.py)
# ============================================================================

def create_analyzer(debug: bool = False):
  """Factory function returning an analyzer object"""
  return type('Analyzer', (), {
      'debug': debug,
      'analyze': lambda self, cst_nodes: analyze_program(cst_nodes, debug),
      'analyze_statement': lambda self, cst_node: analyze_statement(cst_node, debug),
  })()


def create_debug_analyzer():
  """Factory function returning a debug analyzer"""
  return create_analyzer(debug=True)
