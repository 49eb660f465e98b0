"""
Command-line interface for the node launcher.

Every option is optional; anything left out falls back to the environment,
the ``.env`` file and finally the compiled-in defaults. Arguments after a
literal ``--`` are passed to the node untouched.
"""
import argparse
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from node_launcher.errors import ConfigError


class LauncherArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports bad arguments as a ConfigError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise ConfigError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = LauncherArgumentParser(
        prog="node-launcher",
        description="Build the indexing node and run it against local services",
    )

    # Launch configuration overrides
    parser.add_argument("--postgres-url", dest="datastore_url", default=None,
                        help="Postgres connection string for the node's datastore")
    parser.add_argument("--ipfs", dest="content_store_endpoint", default=None,
                        help="IPFS endpoint as host:port")
    parser.add_argument("--ethereum-rpc", dest="chain_endpoints", action="append",
                        default=None, metavar="NETWORK:URL",
                        help="Chain RPC endpoint, repeat for several networks")
    parser.add_argument("--log-level", dest="log_level", default=None,
                        help="Node log filter: error, warn, info, debug, trace "
                             "or module=level directives")

    # Build and process options
    parser.add_argument("--node-binary", type=Path, default=None,
                        help="Path to the node executable (default: target/release/graph-node)")
    parser.add_argument("--build-command", default=None,
                        help="Command that builds the node (default: cargo build --release)")
    parser.add_argument("--skip-build", action="store_true", default=None,
                        help="Run the existing binary without building")
    parser.add_argument("--working-dir", type=Path, default=None,
                        help="Directory to build and run the node in")
    parser.add_argument("--grace-period", dest="shutdown_grace_period", type=float,
                        default=None,
                        help="Seconds to wait for the node to stop before killing it")

    # Launcher behaviour
    parser.add_argument("--print-command", action="store_true",
                        help="Print the node command line and exit without building")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging for the launcher itself")
    return parser


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """
    Parse launcher arguments, splitting off node passthrough arguments.

    Returns:
        argparse.Namespace: Parsed options, with ``extra_args`` holding everything
                            after the first ``--``.

    Raises:
        ConfigError: If an option is unknown or its value cannot be converted.
    """
    argv = list(argv)
    extra_args: List[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, extra_args = argv[:split], argv[split + 1:]

    args = build_parser().parse_args(argv)
    args.extra_args = extra_args or None
    return args


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Optional[Any]]:
    """Map parsed options onto LaunchConfig fields; unset options are None."""
    return {
        "datastore_url": args.datastore_url,
        "content_store_endpoint": args.content_store_endpoint,
        "chain_endpoints": args.chain_endpoints,
        "log_level": args.log_level,
        "node_binary": args.node_binary,
        "build_command": args.build_command,
        "skip_build": args.skip_build,
        "working_dir": args.working_dir,
        "extra_args": args.extra_args,
        "shutdown_grace_period": args.shutdown_grace_period,
    }
