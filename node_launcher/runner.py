import asyncio
import shlex
import sys
from typing import Callable, Optional, Protocol, Sequence

from loguru import logger

from node_launcher.builder import CargoBuilder
from node_launcher.cli import overrides_from_args, parse_args
from node_launcher.config import Settings, load_settings
from node_launcher.errors import ExitCode, LauncherError
from node_launcher.models import BuildResult, ExitOutcome, LaunchConfig
from node_launcher.node_process import NodeProcess, render_command
from node_launcher.resolver import resolve_config
from node_launcher.utils.log import setup_logging


class Builder(Protocol):
    async def build_target(self) -> BuildResult: ...


class Launcher(Protocol):
    async def launch(self) -> ExitOutcome: ...


BuilderFactory = Callable[[LaunchConfig], Builder]
LauncherFactory = Callable[[LaunchConfig], Launcher]


def exit_code_for(outcome: ExitOutcome) -> int:
    """Map how the node ended onto the launcher's own exit code."""
    if outcome.signaled:
        return ExitCode.CHILD_SIGNALED
    return outcome.code


async def launch_node(
    config: LaunchConfig,
    builder_factory: BuilderFactory = CargoBuilder,
    process_factory: LauncherFactory = NodeProcess,
) -> int:
    """
    Build the node, then run it to completion.

    A build failure raises before the node process is ever created.

    Returns:
        int: Exit code the launcher should terminate with.
    """
    await builder_factory(config).build_target()
    outcome = await process_factory(config).launch()
    return exit_code_for(outcome)


def run(
    argv: Optional[Sequence[str]] = None,
    settings: Optional[Settings] = None,
    builder_factory: BuilderFactory = CargoBuilder,
    process_factory: LauncherFactory = NodeProcess,
) -> int:
    """
    Main entry point: resolve the config, build, launch and report.

    Args:
        argv (Optional[Sequence[str]]): Command-line arguments, defaults to
                                        ``sys.argv[1:]``.
        settings (Optional[Settings]): Defaults and environment configuration,
                                       read from the environment when omitted.
        builder_factory (BuilderFactory): Creates the build stage.
        process_factory (LauncherFactory): Creates the launch stage.

    Returns:
        int: 0 or the node's own exit code on a normal run, otherwise the
             distinct code of the failure that stopped the launcher.
    """
    # Errors raised before the settings are read still need a stderr sink
    setup_logging()

    try:
        args = parse_args(sys.argv[1:] if argv is None else argv)
        settings = settings or load_settings()
        setup_logging("DEBUG" if args.verbose else settings.launcher_log_level)

        config = resolve_config(settings.launch_defaults(), overrides_from_args(args))

        if args.print_command:
            print(shlex.join(render_command(config)))
            return ExitCode.OK

        return asyncio.run(launch_node(config, builder_factory, process_factory))
    except LauncherError as exc:
        logger.error(f"{exc.__class__.__name__}: {exc}")
        return exc.exit_code
