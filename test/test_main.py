"""
Command line front end tests using real script files
"""

import pytest
import main


@pytest.fixture
def write_script(tmp_path):
  def write(text, name="script.parley"):
    path = tmp_path / name
    path.write_text(text)
    return str(path)
  return write


class TestRunScript:
  """Running whole scripts through the VM"""

  def test_prints_received_values(self, write_script, capsys):
    script = write_script("""
    # ping-pong with a helper actor
    let echo = spawn { let msg = receive; send root msg }
    send echo 'pong
    spawn { send root root }
    """)
    main.run_script_file(script)
    out = capsys.readouterr().out
    assert out.splitlines() == ["Received: 'pong", "Received: <actor 0>"]

  def test_runtime_error_exits_with_status_one(self, write_script, capsys):
    script = write_script("let x = receive\n")
    with pytest.raises(SystemExit) as exc_info:
      main.run_script_file(script)
    assert exc_info.value.code == 1
    assert "root got into a deadlock" in capsys.readouterr().out

  def test_parse_error_exits_with_status_one(self, write_script, capsys):
    script = write_script("let = 'x\n")
    with pytest.raises(SystemExit) as exc_info:
      main.run_script_file(script)
    assert exc_info.value.code == 1
    assert "Parse error" in capsys.readouterr().out


class TestInspectionModes:
  def test_parse_shows_cst(self, write_script, capsys):
    main.parse_file(write_script("send root 'hi"))
    out = capsys.readouterr().out
    assert "Parsed 1 top-level statements" in out
    assert "SYMBOL('hi')" in out

  def test_analyze_shows_receive_counts(self, write_script, capsys):
    main.analyze_file(write_script("let a = spawn { receive }\nsend a receive"))
    out = capsys.readouterr().out
    assert "[BIND, needs 0] let a = spawn { receive }" in out
    assert "[SEND, needs 1] send a receive" in out


class TestReplCommands:
  def test_env_and_actors(self, parser, analyzer, vm, compile_source, capsys):
    vm.run_program(compile_source("let a = spawn { receive }"))
    assert main.run_repl_command(":env", parser, analyzer, vm)
    assert main.run_repl_command(":actors", parser, analyzer, vm)
    out = capsys.readouterr().out
    assert "a = <actor 1>" in out
    assert "1: parked, at 0/1, 0 queued" in out

  def test_analyze_command(self, parser, analyzer, vm, capsys):
    assert main.run_repl_command(":analyze send root receive", parser, analyzer, vm)
    assert "Receive count: 1" in capsys.readouterr().out

  def test_non_command(self, parser, analyzer, vm):
    assert not main.run_repl_command(":unknown", parser, analyzer, vm)

  def test_interactive_session(self, monkeypatch, capsys):
    lines = iter(["let a = spawn { send root receive }", "send a 'hey", "receive", "exit."])
    monkeypatch.setattr(main, "READLINE_AVAILABLE", False)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    main.run_interactive_mode()
    out = capsys.readouterr().out
    assert "Received: 'hey" in out
    assert "root got into a deadlock" in out
