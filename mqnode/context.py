"""Shared ZeroMQ context and the socket façade handed to nodes."""

from __future__ import annotations

import logging
import threading

import zmq
from frozendict import frozendict

from mqnode.errors import ContextCreationError, UnknownSocketPatternError

logger = logging.getLogger(__name__)

SOCKET_PATTERNS: frozendict[str, int] = frozendict(
    {
        "pub": zmq.PUB,
        "sub": zmq.SUB,
        "xpub": zmq.XPUB,
        "xsub": zmq.XSUB,
        "push": zmq.PUSH,
        "pull": zmq.PULL,
        "pair": zmq.PAIR,
        "stream": zmq.STREAM,
        "req": zmq.REQ,
        "rep": zmq.REP,
        "dealer": zmq.DEALER,
        "router": zmq.ROUTER,
    }
)


def socket_type(pattern: str) -> int:
    try:
        return SOCKET_PATTERNS[pattern]
    except (KeyError, TypeError):
        raise UnknownSocketPatternError(pattern, tuple(SOCKET_PATTERNS)) from None


class MessagingContext:
    """Owner of the process-wide ZeroMQ context.

    Created once before any node exists and closed once after every node
    has drained. Nodes never see this object, only a ``ContextRef``.
    """

    def __init__(self) -> None:
        try:
            self._zmq = zmq.Context()
        except zmq.ZMQError as exc:
            raise ContextCreationError(f"zmq context creation failed: {exc}") from exc
        self._closed = False
        self._lock = threading.Lock()
        self.ref = ContextRef(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def socket(self, pattern: str) -> zmq.Socket:
        kind = socket_type(pattern)
        return self._zmq.socket(kind)

    def close(self) -> None:
        """Terminate the context; blocks until every socket made from it is closed."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.debug("Terminating shared messaging context")
        self._zmq.term()

    def __enter__(self) -> "MessagingContext":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ContextRef:
    """Non-owning view of the shared context; it can make sockets, not end them."""

    __slots__ = ("_owner",)

    def __init__(self, owner: MessagingContext) -> None:
        self._owner = owner

    def socket(self, pattern: str) -> zmq.Socket:
        return self._owner.socket(pattern)

    @property
    def patterns(self) -> tuple[str, ...]:
        return tuple(SOCKET_PATTERNS)

    def __repr__(self) -> str:
        state = "closed" if self._owner.closed else "open"
        return f"<ContextRef {state}>"


__all__ = ["ContextRef", "MessagingContext", "SOCKET_PATTERNS", "socket_type"]
