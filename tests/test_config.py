from __future__ import annotations

import pytest

from mqnode.config import DEFAULT_CONFIG, NodeConfig
from mqnode.errors import UsageError


def test_defaults():
    config = NodeConfig.from_env({})

    assert config.housekeeping is True
    assert config.housekeeping_endpoint == "inproc://housekeeping"
    assert config.loader == "source"
    assert config.max_depth == DEFAULT_CONFIG["max_depth"]
    assert config.interactive is False
    assert config.log_level == "WARNING"


def test_environment_values_are_parsed():
    config = NodeConfig.from_env(
        {
            "MQNODE_HOUSEKEEPING": "off",
            "MQNODE_MAX_DEPTH": "12",
            "MQNODE_LOADER": "bytecode",
            "MQNODE_LOG_LEVEL": "debug",
        }
    )

    assert config.housekeeping is False
    assert config.max_depth == 12
    assert config.loader == "bytecode"
    assert config.log_level == "DEBUG"


def test_overrides_win_over_environment_and_none_is_ignored():
    config = NodeConfig.from_env(
        {"MQNODE_MAX_ITEMS": "50", "MQNODE_INTERACTIVE": "yes"},
        max_items=10,
        interactive=None,
    )

    assert config.max_items == 10
    assert config.interactive is True


@pytest.mark.parametrize(
    "environ",
    [
        {"MQNODE_HOUSEKEEPING": "maybe"},
        {"MQNODE_MAX_DEPTH": "deep"},
        {"MQNODE_MAX_ITEMS": "0"},
        {"MQNODE_HOUSEKEEPING_ADDR": "tcp://127.0.0.1:5555"},
        {"MQNODE_LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_values_raise_usage_error(environ):
    with pytest.raises(UsageError):
        NodeConfig.from_env(environ)


def test_unknown_override_is_rejected():
    with pytest.raises(UsageError):
        NodeConfig.from_env({}, colour="blue")


def test_config_is_frozen():
    config = NodeConfig()
    with pytest.raises(AttributeError):
        config.loader = "bytecode"  # type: ignore[misc]
    assert config.with_overrides(loader="bytecode").loader == "bytecode"
