"""Wall-clock timings of host phases.

Set ``MQNODE_PROFILE`` to any non-empty value to get ``[PROFILE]`` lines on
stderr::

    MQNODE_PROFILE=1 mqnode control.py
"""

from __future__ import annotations

import os
import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

PROFILE_ENV = "MQNODE_PROFILE"

_nesting = threading.local()


def is_profiling_enabled() -> bool:
    return bool(os.environ.get(PROFILE_ENV))


@contextmanager
def profile(operation: str, *, stream: TextIO | None = None) -> Iterator[None]:
    """Time ``operation``; phases opened inside it are printed indented.

    Nesting is tracked per thread, so phases timed from node threads do not
    indent the host's.
    """
    if not is_profiling_enabled():
        yield
        return

    depth = getattr(_nesting, "depth", 0)
    _nesting.depth = depth + 1
    start = time.perf_counter()
    try:
        yield
    finally:
        _nesting.depth = depth
        elapsed_ms = (time.perf_counter() - start) * 1000
        out = stream if stream is not None else sys.stderr
        print(f"[PROFILE] {'  ' * depth}{operation}: {elapsed_ms:.2f}ms", file=out)


__all__ = ["PROFILE_ENV", "is_profiling_enabled", "profile"]
