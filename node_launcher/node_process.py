import asyncio
import os
import shlex
import signal
import sys
from typing import BinaryIO, Dict, List, Mapping, Optional, cast

from loguru import logger

from node_launcher.errors import LaunchFailure
from node_launcher.models import ExitOutcome, LaunchConfig
from node_launcher.utils.decorators import log_execution
from node_launcher.utils.streams import forward_stream

DATASTORE_FLAG = "--postgres-url"
CONTENT_STORE_FLAG = "--ipfs"
CHAIN_ENDPOINT_FLAG = "--ethereum-rpc"
LOG_LEVEL_FLAG = "--GRAPH_LOG"
LOG_LEVEL_ENV = "GRAPH_LOG"

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def render_args(config: LaunchConfig) -> List[str]:
    """
    Translate a LaunchConfig into the node's argument vector.

    The order is fixed: datastore, content store, one flag per chain endpoint
    in configuration order, the log level override, then any extra arguments.
    """
    args = [
        DATASTORE_FLAG, config.datastore_url,
        CONTENT_STORE_FLAG, config.content_store_endpoint,
    ]
    for endpoint in config.chain_endpoints:
        args.extend([CHAIN_ENDPOINT_FLAG, endpoint.render()])
    args.extend([LOG_LEVEL_FLAG, config.log_level])
    args.extend(config.extra_args)
    return args


def render_env(
    config: LaunchConfig,
    base: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Return the node's environment: ``base`` (or ours) plus the log filter."""
    env = dict(os.environ if base is None else base)
    env[LOG_LEVEL_ENV] = config.log_level
    return env


def render_command(config: LaunchConfig) -> List[str]:
    """Full command line used to start the node."""
    return [os.fspath(config.executable), *render_args(config)]


def signal_name(signum: int) -> str:
    """Name of ``signum`` for log lines, or its number when Python has no name for it."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class NodeProcess:
    """
    Runs the indexing node as a child process until it exits.

    Attributes:
        config (LaunchConfig): Resolved launch configuration.
        stdout (Optional[BinaryIO]): Sink for the node's stdout, defaults to ours.
        stderr (Optional[BinaryIO]): Sink for the node's stderr, defaults to ours.
        forward_signals (bool): Forward SIGINT/SIGTERM received by the launcher
                                to the node while it runs.
        process (Optional[asyncio.subprocess.Process]): The running node, once
                                                        started.

    Methods:
        launch() -> ExitOutcome:
            Starts the node, forwards its output and returns how it exited.
        terminate(signum: int) -> None:
            Sends a signal to the node and kills it after the grace period.
    """

    def __init__(
        self,
        config: LaunchConfig,
        stdout: Optional[BinaryIO] = None,
        stderr: Optional[BinaryIO] = None,
        forward_signals: bool = True,
    ) -> None:
        self.config = config
        self.stdout = stdout
        self.stderr = stderr
        self.forward_signals = forward_signals
        self.process: Optional[asyncio.subprocess.Process] = None
        self._kill_handle: Optional[asyncio.TimerHandle] = None
        self._installed_signals: List[int] = []

    @property
    def command(self) -> List[str]:
        return render_command(self.config)

    @log_execution()
    async def launch(self) -> ExitOutcome:
        """
        Start the node, forward its output and wait for it to exit.

        stdout and stderr are drained by two concurrent tasks, and both must reach
        end of stream before this returns, even if the node exited earlier.

        Returns:
            ExitOutcome: The node's exit code, or the signal that killed it.

        Raises:
            LaunchFailure: If the node binary cannot be executed.
        """
        command = self.command
        logger.info(f"Starting node: {shlex.join(command)}")
        try:
            self.process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self.config.working_dir,
                env=render_env(self.config),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error(f"Could not start node {command[0]!r}: {exc}")
            raise LaunchFailure(exc) from exc

        process = self.process
        logger.info(f"Node started with pid {process.pid}")
        # Both pipes were requested above
        node_stdout = cast(asyncio.StreamReader, process.stdout)
        node_stderr = cast(asyncio.StreamReader, process.stderr)
        forwarders = [
            asyncio.create_task(
                forward_stream(node_stdout, self.stdout or sys.stdout.buffer)),
            asyncio.create_task(
                forward_stream(node_stderr, self.stderr or sys.stderr.buffer)),
        ]

        self._install_signal_handlers()
        try:
            returncode, *_ = await asyncio.gather(process.wait(), *forwarders)
        except BaseException:
            # Never leave the node running behind us
            if process.returncode is None:
                process.kill()
                await process.wait()
            for task in forwarders:
                task.cancel()
            await asyncio.gather(*forwarders, return_exceptions=True)
            raise
        finally:
            self._remove_signal_handlers()
            if self._kill_handle is not None:
                self._kill_handle.cancel()
                self._kill_handle = None

        if returncode < 0:
            outcome = ExitOutcome(code=-returncode, signaled=True)
            logger.warning(f"Node was terminated by signal {signal_name(-returncode)}")
        else:
            outcome = ExitOutcome(code=returncode)
            logger.info(f"Node exited with code {returncode}")
        return outcome

    def terminate(self, signum: int = signal.SIGTERM) -> None:
        """
        Ask the node to stop, and kill it if it outlives the grace period.

        Args:
            signum (int): Signal to send to the node.
        """
        process = self.process
        if process is None or process.returncode is not None:
            return

        logger.warning(
            f"Forwarding {signal_name(signum)} to node (pid {process.pid})")
        try:
            process.send_signal(signum)
        except ProcessLookupError:
            return

        if self._kill_handle is None:
            loop = asyncio.get_running_loop()
            self._kill_handle = loop.call_later(
                self.config.shutdown_grace_period, self._kill)

    def _kill(self) -> None:
        process = self.process
        if process is None or process.returncode is not None:
            return
        logger.error(
            f"Node did not exit within {self.config.shutdown_grace_period}s, killing it")
        try:
            process.kill()
        except ProcessLookupError:
            pass

    def _install_signal_handlers(self) -> None:
        if not self.forward_signals:
            return
        loop = asyncio.get_running_loop()
        for signum in FORWARDED_SIGNALS:
            try:
                loop.add_signal_handler(signum, self.terminate, signum)
            except (NotImplementedError, RuntimeError, ValueError):
                logger.warning(
                    f"Cannot forward {signum.name} to the node on this platform")
                continue
            self._installed_signals.append(signum)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in self._installed_signals:
            loop.remove_signal_handler(signum)
        self._installed_signals.clear()
