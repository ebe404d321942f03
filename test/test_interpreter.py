"""
Tests for environments, values and single-actor expression evaluation
"""

import pytest
from interpreter import (
  make_runtime_env,
  make_actor,
  make_symbol,
  make_actor_handle,
  make_closure,
  env_bind_value,
  env_lookup_value,
  eval_expr,
  show_value,
  UnboundVariable,
  SpawningNonBlock,
  ParleyRuntimeError,
  ROOT_HANDLE
)
from semantics import (
  make_block,
  make_expr_statement,
  make_receive,
  make_root,
  make_spawn,
  make_symbol_expr,
  make_var
)


class RecordingSpawner:
  """Spawn callback that hands out handles from 1 and keeps the actors"""

  def __init__(self):
    self.spawned = []

  def __call__(self, actor):
    self.spawned.append(actor)
    return make_actor_handle(len(self.spawned))


class TestEnvironment:
  """Scope chain lookups"""

  def test_lookup_walks_outward(self):
    outer = make_runtime_env()
    env_bind_value(outer, "x", make_symbol("outer"))
    inner = make_runtime_env(parent=outer)
    assert env_lookup_value(inner, "x") == make_symbol("outer")

  def test_inner_binding_wins(self):
    outer = make_runtime_env(bindings={"x": make_symbol("outer")})
    inner = make_runtime_env(parent=outer, bindings={"x": make_symbol("inner")})
    assert env_lookup_value(inner, "x") == make_symbol("inner")

  def test_unbound_variable_ignores_sibling_scopes(self):
    parent = make_runtime_env()
    sibling = make_runtime_env(parent=parent, bindings={"x": make_symbol("elsewhere")})
    child = make_runtime_env(parent=parent, bindings={"y": make_symbol("y")})
    assert env_lookup_value(sibling, "x") == make_symbol("elsewhere")
    with pytest.raises(UnboundVariable) as exc_info:
      env_lookup_value(child, "x")
    assert exc_info.value.name == "x"
    assert str(exc_info.value) == "unbound variable: `x`"
    assert isinstance(exc_info.value, ParleyRuntimeError)

  def test_parent_growth_is_visible_to_children(self):
    parent = make_runtime_env()
    child = make_runtime_env(parent=parent)
    env_bind_value(parent, "late", make_symbol("late"))
    assert env_lookup_value(child, "late") == make_symbol("late")


class TestEvaluation:
  """Expression evaluation inside one actor"""

  @pytest.fixture
  def actor(self):
    return make_actor()

  @pytest.fixture
  def spawner(self):
    return RecordingSpawner()

  def test_symbol_and_root(self, actor, spawner):
    assert eval_expr(make_symbol_expr("ping"), actor, spawner) == make_symbol("ping")
    assert eval_expr(make_root(), actor, spawner) == make_actor_handle(ROOT_HANDLE)

  def test_var_lookup(self, actor, spawner):
    env_bind_value(actor['env'], "a", make_symbol("a"))
    assert eval_expr(make_var("a"), actor, spawner) == make_symbol("a")
    with pytest.raises(UnboundVariable):
      eval_expr(make_var("b"), actor, spawner)

  def test_block_captures_env_without_running(self, actor, spawner):
    body = (make_expr_statement(make_receive()),)
    closure = eval_expr(make_block(body), actor, spawner)
    assert closure['type'] == "Closure"
    assert closure['closure_env'] is actor['env']
    assert closure['value'] == body
    assert spawner.spawned == []

  def test_receive_pops_front(self, actor, spawner):
    actor['mailbox'].extend([make_symbol("first"), make_symbol("second")])
    assert eval_expr(make_receive(), actor, spawner) == make_symbol("first")
    assert list(actor['mailbox']) == [make_symbol("second")]

  def test_receive_on_empty_mailbox_is_not_a_script_error(self, actor, spawner):
    with pytest.raises(RuntimeError) as exc_info:
      eval_expr(make_receive(), actor, spawner)
    assert not isinstance(exc_info.value, ParleyRuntimeError)

  def test_spawn_builds_fresh_scope(self, actor, spawner):
    env_bind_value(actor['env'], "x", make_symbol("x"))
    body = make_block([make_expr_statement(make_var("x"))])
    handle = eval_expr(make_spawn(body), actor, spawner)
    assert handle == make_actor_handle(1)
    (child,) = spawner.spawned
    assert child['position'] == 0
    assert len(child['mailbox']) == 0
    assert child['env']['parent'] is actor['env']
    assert child['env']['bindings'] == {}
    assert child['code'] == body['children']

  def test_spawn_of_bound_closure(self, actor, spawner):
    env_bind_value(actor['env'], "f", make_closure(actor['env'], ()))
    assert eval_expr(make_spawn(make_var("f")), actor, spawner) == make_actor_handle(1)

  def test_spawn_non_block(self, actor, spawner):
    with pytest.raises(SpawningNonBlock):
      eval_expr(make_spawn(make_symbol_expr("nope")), actor, spawner)
    with pytest.raises(SpawningNonBlock):
      eval_expr(make_spawn(make_root()), actor, spawner)
    assert spawner.spawned == []


class TestShowValue:
  def test_display_forms(self):
    assert show_value(make_actor_handle(3)) == "<actor 3>"
    assert show_value(make_symbol("ping")) == "'ping"
    assert show_value(make_closure(make_runtime_env(), ())) == "<closure ...>"
