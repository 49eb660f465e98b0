import asyncio
import shlex
import sys
import time
from typing import BinaryIO, Optional, cast

from loguru import logger

from node_launcher.errors import BuildFailure
from node_launcher.models import BuildResult, LaunchConfig
from node_launcher.utils.decorators import log_execution
from node_launcher.utils.streams import forward_stream


class CargoBuilder:
    """
    Runs the build step that produces the node binary.

    The build command's stdout and stderr are merged, relayed live to the
    launcher's stderr and captured so a failure can carry the full output.

    Attributes:
        config (LaunchConfig): Resolved launch configuration.
        output (Optional[BinaryIO]): Where build output is relayed. Defaults to
                                     the launcher's stderr at build time.
    """

    def __init__(self, config: LaunchConfig, output: Optional[BinaryIO] = None) -> None:
        self.config = config
        self.output = output

    @log_execution()
    async def build_target(self) -> BuildResult:
        """
        Build (or refresh) the node binary.

        Returns:
            BuildResult: Command, exit code, captured output and duration.

        Raises:
            BuildFailure: If the build command cannot be started or exits non-zero.
        """
        command = self.config.build_command
        if self.config.skip_build:
            logger.info("Skipping build step")
            return BuildResult(command=command, skipped=True)

        logger.info(f"Building node: {shlex.join(command)}")
        start = time.perf_counter()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self.config.working_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            logger.error(f"Could not start build command {command[0]!r}: {exc}")
            raise BuildFailure(None, str(exc)) from exc

        captured = bytearray()
        # stdout was requested as a pipe above
        build_output = cast(asyncio.StreamReader, process.stdout)
        await forward_stream(build_output, self.output or sys.stderr.buffer, captured)
        exit_code = await process.wait()
        output = captured.decode(errors="replace")

        if exit_code != 0:
            logger.error(f"Build failed with exit code {exit_code}")
            raise BuildFailure(exit_code, output)

        duration = time.perf_counter() - start
        logger.info(f"Build finished in {duration:.1f}s")
        return BuildResult(
            command=command,
            exit_code=exit_code,
            captured_output=output,
            duration=duration,
        )
