"""Runtime configuration for the node host.

Settings are resolved once at process start: built-in defaults, then
``MQNODE_*`` environment variables, then explicit overrides (the CLI flags).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from frozendict import frozendict

from mqnode.errors import UsageError

DEFAULT_CONFIG: frozendict[str, Any] = frozendict(
    {
        "housekeeping": True,
        "housekeeping_endpoint": "inproc://housekeeping",
        "loader": "source",
        "max_depth": 256,
        "max_items": 1_000_000,
        "interactive": False,
        "log_level": "WARNING",
    }
)

ENV_VARS: frozendict[str, str] = frozendict(
    {
        "housekeeping": "MQNODE_HOUSEKEEPING",
        "housekeeping_endpoint": "MQNODE_HOUSEKEEPING_ADDR",
        "loader": "MQNODE_LOADER",
        "max_depth": "MQNODE_MAX_DEPTH",
        "max_items": "MQNODE_MAX_ITEMS",
        "interactive": "MQNODE_INTERACTIVE",
        "log_level": "MQNODE_LOG_LEVEL",
    }
)

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class NodeConfig:
    housekeeping: bool = DEFAULT_CONFIG["housekeeping"]
    housekeeping_endpoint: str = DEFAULT_CONFIG["housekeeping_endpoint"]
    loader: str = DEFAULT_CONFIG["loader"]
    max_depth: int = DEFAULT_CONFIG["max_depth"]
    max_items: int = DEFAULT_CONFIG["max_items"]
    interactive: bool = DEFAULT_CONFIG["interactive"]
    log_level: str = DEFAULT_CONFIG["log_level"]

    def __post_init__(self) -> None:
        if not isinstance(self.housekeeping, bool):
            raise UsageError(f"housekeeping must be bool, got {type(self.housekeeping).__name__}")
        if not isinstance(self.interactive, bool):
            raise UsageError(f"interactive must be bool, got {type(self.interactive).__name__}")
        for name in ("max_depth", "max_items"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise UsageError(f"{name} must be a positive integer, got {value!r}")
        if not self.housekeeping_endpoint.startswith("inproc://"):
            raise UsageError(
                "housekeeping_endpoint must be an inproc:// address, "
                f"got {self.housekeeping_endpoint!r}"
            )
        if not self.loader:
            raise UsageError("loader must not be empty")
        level = self.log_level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise UsageError(f"unknown log level {self.log_level!r}")
        object.__setattr__(self, "log_level", level)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "NodeConfig":
        """Resolve the configuration from ``environ`` and explicit overrides.

        Overrides whose value is ``None`` are ignored so that unset CLI flags
        fall through to the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field in fields(cls):
            raw = env.get(ENV_VARS[field.name])
            if raw is not None:
                values[field.name] = _parse(field.name, raw)
        unknown = set(overrides) - set(ENV_VARS)
        if unknown:
            raise UsageError(f"unknown configuration keys: {', '.join(sorted(unknown))}")
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "NodeConfig":
        return replace(self, **overrides)


def _parse(name: str, raw: str) -> Any:
    default = DEFAULT_CONFIG[name]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise UsageError(f"{ENV_VARS[name]} must be a boolean, got {raw!r}")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError as exc:
            raise UsageError(f"{ENV_VARS[name]} must be an integer, got {raw!r}") from exc
    return raw


__all__ = ["DEFAULT_CONFIG", "ENV_VARS", "NodeConfig"]
