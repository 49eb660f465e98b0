from pathlib import Path

import pytest

from node_launcher.cli import overrides_from_args, parse_args
from node_launcher.errors import ConfigError, ExitCode


def test_absent_options_do_not_override():
    overrides = overrides_from_args(parse_args([]))

    assert set(overrides.values()) == {None}


def test_repeated_ethereum_rpc_keeps_order():
    args = parse_args([
        "--ethereum-rpc", "mainnet:http://localhost:8545",
        "--ethereum-rpc", "base:https://base-rpc.publicnode.com",
    ])

    assert args.chain_endpoints == [
        "mainnet:http://localhost:8545",
        "base:https://base-rpc.publicnode.com",
    ]


def test_arguments_after_separator_go_to_node():
    args = parse_args(["--skip-build", "--", "--node-id", "index_node_0", "--"])

    assert args.skip_build is True
    assert args.extra_args == ["--node-id", "index_node_0", "--"]


def test_overrides_cover_build_options():
    args = parse_args([
        "--node-binary", "bin/graph-node",
        "--build-command", "cargo build --release -p graph-node",
        "--working-dir", "/src/graph-node",
        "--grace-period", "2.5",
    ])

    overrides = overrides_from_args(args)

    assert overrides["node_binary"] == Path("bin/graph-node")
    assert overrides["build_command"] == "cargo build --release -p graph-node"
    assert overrides["working_dir"] == Path("/src/graph-node")
    assert overrides["shutdown_grace_period"] == 2.5
    assert overrides["skip_build"] is None


def test_bad_option_value_is_a_config_error():
    with pytest.raises(ConfigError) as exc_info:
        parse_args(["--grace-period", "soon"])

    assert "--grace-period" in str(exc_info.value)
    assert exc_info.value.exit_code == ExitCode.CONFIG_ERROR


def test_unknown_option_is_a_config_error():
    with pytest.raises(ConfigError, match="--no-such-flag"):
        parse_args(["--no-such-flag"])


def test_help_still_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["--help"])

    assert exc_info.value.code == 0
    assert "--ethereum-rpc" in capsys.readouterr().out
