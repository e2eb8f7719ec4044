"""Shared fixtures for mqnode tests."""

from __future__ import annotations

import io
import textwrap
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import zmq

from mqnode.config import NodeConfig
from mqnode.interpreter import InterpreterState
from mqnode.services import NodeServices

RESULTS_ENDPOINT = "inproc://results"
WAIT_MS = 5000


@pytest.fixture
def diagnostics() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def config() -> NodeConfig:
    return NodeConfig()


@pytest.fixture
def services(config: NodeConfig, diagnostics: io.StringIO) -> Iterator[NodeServices]:
    bundle = NodeServices.create(config, diagnostics=diagnostics)
    yield bundle
    bundle.close()


@pytest.fixture
def root(services: NodeServices) -> Iterator[InterpreterState]:
    state = InterpreterState(services, name="__main__")
    yield state
    state.close()


@pytest.fixture
def script(tmp_path: Path) -> Callable[..., str]:
    """Write a program to ``tmp_path`` and return its path."""

    def write(name: str, source: str, *, prelude: str = "") -> str:
        path = tmp_path / name
        path.write_text(prelude + textwrap.dedent(source))
        return str(path)

    return write


@pytest.fixture
def results(services: NodeServices) -> Iterator[zmq.Socket]:
    """PULL socket on the shared context that nodes report to."""
    sock = services.context.socket("pull")
    sock.bind(RESULTS_ENDPOINT)
    yield sock
    sock.close(linger=0)


_REPORTER = f"""
def report(value):
    with node.socket("push") as sock:
        sock.connect({RESULTS_ENDPOINT!r})
        sock.send_json(value)
"""


@pytest.fixture
def reporter() -> str:
    """Source of a ``report(value)`` helper for node programs."""
    return _REPORTER


@pytest.fixture
def receive() -> Callable[..., object]:
    def _receive(sock: zmq.Socket, timeout: int = WAIT_MS):
        assert sock.poll(timeout, zmq.POLLIN), "no message from node"
        return sock.recv_json()

    return _receive
