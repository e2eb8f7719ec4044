"""Process-level orchestration: the control program and shutdown."""

from __future__ import annotations

import logging
import sys
import traceback
from collections.abc import Sequence
from typing import TextIO

from mqnode.config import NodeConfig
from mqnode.errors import ContextCreationError, LoadError, NodeError
from mqnode.interpreter import InterpreterState
from mqnode.marshaler import MarshalMode
from mqnode.profiling import profile
from mqnode.services import NodeServices

logger = logging.getLogger(__name__)

BANNER = "mqnode: Python nodes connected with ZeroMQ"


def command_line_table(args: Sequence[str]) -> dict[int, str]:
    """The ``arg`` global: command-line arguments indexed from 1."""
    return {index: value for index, value in enumerate(args, start=1)}


def run(
    path: str,
    args: Sequence[str] = (),
    *,
    config: NodeConfig | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    diagnostics: TextIO | None = None,
) -> int:
    """Run a control program and wait for the nodes it starts.

    Returns the process exit code.
    """
    config = config or NodeConfig.from_env()
    diagnostics = diagnostics if diagnostics is not None else sys.stderr

    try:
        with profile("Create node services"):
            services = NodeServices.create(config, diagnostics=diagnostics)
    except ContextCreationError as exc:
        print(f"[MQNODE] {exc}", file=diagnostics)
        return 1

    root = InterpreterState(services, name="__main__")
    exit_code = 0
    try:
        services.marshaler.marshal({"arg": command_line_table(args)}, root, mode=MarshalMode.GLOBAL)
        with profile("Load control program"):
            root.load(path)
        with profile("Run control program"):
            root.call()
    except LoadError as exc:
        print(f"[MQNODE] {exc}", file=diagnostics)
        exit_code = 1
    except SystemExit as exc:
        # sys.exit(), sys.exit(None) and sys.exit(0) end the program normally
        if exc.code not in (0, None):
            print(f"[MQNODE] control program exited with {exc.code!r}", file=diagnostics)
            exit_code = 1
    except Exception as exc:
        _print_error(exc, diagnostics)
        exit_code = 1

    if exit_code != 0:
        # nodes started before the failure are left running, as on a fatal exit
        root.close()
        services.close(terminate_context=False)
        return exit_code

    if config.interactive:
        interact(root, stdin=stdin, stdout=stdout, diagnostics=diagnostics)

    with profile("Drain nodes and shut down"):
        consumed = services.drain()
        # sockets held by the control program must go before the context ends
        root.close()
        services.close()
    logger.debug("Host finished after %d housekeeping events", consumed)
    return exit_code


def interact(
    root: InterpreterState,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    diagnostics: TextIO | None = None,
) -> None:
    """Execute input lines in the root state until end of input."""
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    diagnostics = diagnostics if diagnostics is not None else sys.stderr
    print(BANNER, file=stdout)
    for line in stdin:
        if not line.strip():
            continue
        try:
            root.execute(line)
        except NodeError as exc:
            print(f"[MQNODE] {exc}", file=diagnostics)
        except (Exception, SystemExit) as exc:
            _print_error(exc, diagnostics)


def _print_error(exc: BaseException, stream: TextIO) -> None:
    formatted = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    print(formatted.rstrip(), file=stream)


__all__ = ["BANNER", "command_line_table", "interact", "run"]
