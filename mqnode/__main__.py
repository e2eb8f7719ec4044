from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterable

from mqnode import host
from mqnode.config import NodeConfig
from mqnode.errors import NodeError, UsageError


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="mqnode",
        usage="mqnode [options] <path> [args ...]",
        description=(
            "Run a Python control program that starts nodes: Python programs in "
            "separate threads, each with its own namespace, connected with ZeroMQ.\n\n"
            "Inside every program the global 'node' provides:\n"
            "  node.create(path, *args, env=None)  start a node, returns its id\n"
            "  node.shared_context()                the shared ZeroMQ context\n"
            "  node.self_id()                       (thread id, process id)\n"
            "  node.socket(pattern)                 pub, sub, xpub, xsub, push, pull,\n"
            "                                       pair, stream, req, rep, dealer, router\n\n"
            "The control program sees its arguments as the global 'arg', indexed from 1."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("path", help="Control program to run")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the control program")
    parser.add_argument(
        "--no-housekeeping",
        dest="housekeeping",
        action="store_false",
        default=None,
        help="Do not wait for started nodes before exiting",
    )
    parser.add_argument(
        "--loader",
        help="Program loader: 'source' (default), 'bytecode', or MODULE:ATTR of a custom loader",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        default=None,
        help="After the control program, execute lines read from stdin in its namespace",
    )
    parser.add_argument("--max-depth", type=int, help="Nesting limit for values passed to nodes")
    parser.add_argument("--max-items", type=int, help="Size limit for values passed to nodes")
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")
    return parser


def _usage(message: str) -> int:
    print(f"usage: mqnode [options] <path> [args ...]\nmqnode: error: {message}", file=sys.stderr)
    return 1


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
        config = NodeConfig.from_env(
            housekeeping=args.housekeeping,
            loader=args.loader,
            interactive=args.interactive,
            max_depth=args.max_depth,
            max_items=args.max_items,
            log_level=args.log_level,
        )
    except UsageError as exc:
        return _usage(str(exc))

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
    )
    try:
        return host.run(args.path, args.args, config=config)
    except NodeError as exc:
        print(f"[MQNODE] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
