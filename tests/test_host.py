"""Tests for the control program host."""

from __future__ import annotations

import io
import json

import pytest

from mqnode import host
from mqnode.config import NodeConfig
from mqnode.errors import ContextCreationError
from mqnode.interpreter import InterpreterState


def run(path, args=(), **config):
    diagnostics = io.StringIO()
    stdout = io.StringIO()
    code = host.run(
        path,
        args,
        config=NodeConfig(**config),
        stdin=io.StringIO(""),
        stdout=stdout,
        diagnostics=diagnostics,
    )
    return code, stdout.getvalue(), diagnostics.getvalue()


def test_command_line_table_is_one_indexed():
    assert host.command_line_table(["a", "b"]) == {1: "a", 2: "b"}
    assert host.command_line_table([]) == {}


def test_control_program_sees_arguments(script, tmp_path):
    out = tmp_path / "arg.json"
    path = script(
        "control.py",
        f"""
        import json

        with open({str(out)!r}, "w") as handle:
            json.dump({{str(key): value for key, value in arg.items()}}, handle)
        """,
    )

    code, _, diagnostics = run(path, ["first", "second"])

    assert code == 0, diagnostics
    assert json.loads(out.read_text()) == {"1": "first", "2": "second"}


def test_host_waits_for_every_node(script, tmp_path):
    worker = script(
        "worker.py",
        """
        import os
        import time


        def main(gate, out):
            while not os.path.exists(gate):
                time.sleep(0.005)
            time.sleep(0.05)
            with open(out, "w") as handle:
                handle.write("done")
        """,
    )
    control = script(
        "control.py",
        f"""
        import pathlib

        gate = pathlib.Path({str(tmp_path / "gate")!r})
        for index in range(3):
            node.create({worker!r}, str(gate), {str(tmp_path)!r} + f"/out-{{index}}")
        gate.touch()
        """,
    )

    code, _, diagnostics = run(control)

    assert code == 0, diagnostics
    for index in range(3):
        assert (tmp_path / f"out-{index}").read_text() == "done"


def test_failing_node_does_not_change_the_exit_code(script):
    worker = script("worker.py", "def main():\n    raise ValueError('node failure')\n")
    control = script("control.py", f"node.create({worker!r})\n")

    code, _, diagnostics = run(control)

    assert code == 0
    assert "ValueError: node failure" in diagnostics


def test_spawn_errors_can_be_handled_by_the_control_program(script, tmp_path):
    out = tmp_path / "errors.txt"
    control = script(
        "control.py",
        f"""
        from mqnode import LoadError, MarshalTypeError

        caught = []
        try:
            node.create({str(tmp_path / "missing.py")!r})
        except LoadError as exc:
            caught.append(type(exc).__name__)
        try:
            node.create(__file__, print)
        except MarshalTypeError as exc:
            caught.append(type(exc).__name__)
        with open({str(out)!r}, "w") as handle:
            handle.write(",".join(caught))
        """,
    )

    code, _, diagnostics = run(control)

    assert code == 0, diagnostics
    assert out.read_text() == "LoadError,MarshalTypeError"


def test_missing_control_program(tmp_path):
    path = str(tmp_path / "missing.py")

    code, _, diagnostics = run(path)

    assert code == 1
    assert path in diagnostics


def test_control_program_error(script):
    path = script("control.py", "raise RuntimeError('control failed')\n")

    code, _, diagnostics = run(path)

    assert code == 1
    assert "RuntimeError: control failed" in diagnostics


def test_without_housekeeping(script):
    path = script("control.py", "x = 1\n")

    code, _, _ = run(path, housekeeping=False)

    assert code == 0


def test_context_creation_failure(script, monkeypatch):
    def fail():
        raise ContextCreationError("zmq context creation failed: no memory")

    monkeypatch.setattr("mqnode.services.MessagingContext", fail)
    path = script("control.py", "x = 1\n")

    code, _, diagnostics = run(path)

    assert code == 1
    assert "zmq context creation failed" in diagnostics


def test_interactive_lines_run_in_the_control_namespace(services, capsys):
    root = InterpreterState(services, name="__main__")
    stdin = io.StringIO("x = 41\nprint(x + 1)\n\nraise ValueError('bad line')\ny = x\n")
    stdout = io.StringIO()
    diagnostics = io.StringIO()

    try:
        host.interact(root, stdin=stdin, stdout=stdout, diagnostics=diagnostics)

        assert root.get_global("y") == 41
    finally:
        root.close()

    assert stdout.getvalue().startswith(host.BANNER)
    assert capsys.readouterr().out == "42\n"
    assert "ValueError: bad line" in diagnostics.getvalue()


def test_interactive_run(script, monkeypatch, capsys):
    path = script("control.py", "greeting = 'hi'\n")
    monkeypatch.setattr("sys.stdin", io.StringIO("print(greeting)\n"))

    code = host.run(path, config=NodeConfig(interactive=True), diagnostics=io.StringIO())

    assert code == 0
    out = capsys.readouterr().out
    assert host.BANNER in out
    assert "hi" in out


@pytest.mark.parametrize("call", ["sys.exit()", "sys.exit(0)", "sys.exit(None)"])
def test_control_program_exit_with_success(script, tmp_path, call):
    worker = script(
        "worker.py",
        f"""
        import time


        def main():
            time.sleep(0.05)
            with open({str(tmp_path / "out")!r}, "w") as handle:
                handle.write("done")
        """,
    )
    control = script("control.py", f"import sys\nnode.create({worker!r})\n{call}\n")

    code, _, diagnostics = run(control)

    assert code == 0, diagnostics
    assert diagnostics == ""
    # the host still waits for the node before returning
    assert (tmp_path / "out").read_text() == "done"


@pytest.mark.parametrize(("call", "shown"), [("sys.exit(3)", "3"), ("sys.exit('stop')", "'stop'")])
def test_control_program_exit_with_failure(script, call, shown):
    control = script("control.py", f"import sys\n{call}\n")

    code, _, diagnostics = run(control)

    assert code == 1
    assert diagnostics.strip() == f"[MQNODE] control program exited with {shown}"


def test_control_program_exit_still_allows_interaction(script, monkeypatch, capsys):
    control = script("control.py", "import sys\nanswer = 42\nsys.exit(0)\n")
    monkeypatch.setattr("sys.stdin", io.StringIO("print(answer)\n"))

    code = host.run(control, config=NodeConfig(interactive=True), diagnostics=io.StringIO())

    assert code == 0
    assert "42" in capsys.readouterr().out


def test_housekeeping_channel_failure(script):
    path = script("control.py", "x = 1\n")

    code, _, diagnostics = run(path, housekeeping_endpoint="inproc://")

    assert code == 1
    assert diagnostics.startswith("[MQNODE] can not open housekeeping channel at inproc://")
