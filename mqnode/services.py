from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import TextIO

from mqnode.config import NodeConfig
from mqnode.context import MessagingContext
from mqnode.housekeeping import HousekeepingTracker
from mqnode.loaders import Loader, resolve_loader
from mqnode.marshaler import Marshaler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeServices:
    """Everything an interpreter state borrows from the host.

    Handed by reference to every state; no state owns any of it. The tracker
    is ``None`` when housekeeping is disabled.
    """

    config: NodeConfig
    context: MessagingContext
    tracker: HousekeepingTracker | None
    marshaler: Marshaler
    loader: Loader
    diagnostics: TextIO = field(default_factory=lambda: sys.stderr)

    @classmethod
    def create(cls, config: NodeConfig, *, diagnostics: TextIO | None = None) -> "NodeServices":
        loader = resolve_loader(config.loader)
        context = MessagingContext()
        tracker = None
        if config.housekeeping:
            try:
                tracker = HousekeepingTracker(config.housekeeping_endpoint)
            except Exception:
                context.close()
                raise
        return cls(
            config=config,
            context=context,
            tracker=tracker,
            marshaler=Marshaler(max_depth=config.max_depth, max_items=config.max_items),
            loader=loader,
            diagnostics=diagnostics if diagnostics is not None else sys.stderr,
        )

    def drain(self) -> int:
        """Wait for started nodes to terminate; a no-op without housekeeping."""
        if self.tracker is None:
            return 0
        return self.tracker.drain()

    def close(self, *, terminate_context: bool = True) -> None:
        """Close the tracker and, unless told otherwise, the shared context.

        Terminating the context blocks until every socket made from it is
        closed, so callers skip it when nodes may still be running.
        """
        if self.tracker is not None:
            self.tracker.close()
        if terminate_context:
            self.context.close()
        logger.debug("Node services closed")

    def shutdown(self) -> int:
        """Drain, then close everything. Returns the events consumed."""
        consumed = self.drain()
        self.close()
        return consumed


__all__ = ["NodeServices"]
