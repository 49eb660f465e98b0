import shlex
from pathlib import Path
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from node_launcher.utils.custom_types import LogLevel, NonEmptyStr


class ChainEndpoint(BaseModel):
    """
    A blockchain RPC target the node should connect to.

    Accepts either a mapping, a ``(network, rpc_url)`` pair, or the string form
    ``network:rpc_url``. The string is split on the first colon only, so the URL
    keeps its scheme and port untouched.

    Attributes:
        network (str): Network identifier, e.g. ``mainnet`` or ``base``.
        rpc_url (str): JSON-RPC endpoint URL for that network.
    """

    model_config = ConfigDict(frozen=True)

    network: NonEmptyStr
    rpc_url: NonEmptyStr

    @model_validator(mode="before")
    @classmethod
    def _from_short_form(cls, data: Any) -> Any:
        if isinstance(data, str):
            network, sep, rpc_url = data.strip().partition(":")
            if not sep:
                raise ValueError(f"expected networkTag:rpcURL, got {data!r}")
            if rpc_url.startswith("//"):
                # "https://host" has no tag in front of the URL
                raise ValueError(f"missing network tag in {data!r}")
            return {"network": network, "rpc_url": rpc_url}
        if isinstance(data, (tuple, list)):
            if len(data) != 2:
                raise ValueError(f"expected (network, rpc_url) pair, got {data!r}")
            return {"network": data[0], "rpc_url": data[1]}
        return data

    @field_validator("network")
    @classmethod
    def _no_colon_in_network(cls, value: str) -> str:
        if ":" in value:
            raise ValueError(f"network tag {value!r} must not contain ':'")
        return value

    def render(self) -> str:
        """Return the ``network:rpc_url`` form the node expects."""
        return f"{self.network}:{self.rpc_url}"


class LaunchConfig(BaseModel):
    """
    Resolved parameters for a single node launch.

    Attributes:
        datastore_url (str): Postgres connection string.
        content_store_endpoint (str): IPFS ``host:port``.
        chain_endpoints (Tuple[ChainEndpoint, ...]): RPC targets, unique by network.
        log_level (str): Node log filter, e.g. ``info`` or ``info,graph=debug``.
        node_binary (Path): Path to the built node executable.
        build_command (Tuple[str, ...]): Command that (re)builds the node binary.
        skip_build (bool): Launch the existing binary without building first.
        working_dir (Path): Directory the build and the node run in.
        extra_args (Tuple[str, ...]): Passed to the node after the rendered flags.
        shutdown_grace_period (float): Seconds to wait after forwarding a
                                       termination signal before killing the node.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    datastore_url: NonEmptyStr
    content_store_endpoint: NonEmptyStr
    chain_endpoints: Tuple[ChainEndpoint, ...]
    log_level: LogLevel = "info"

    node_binary: Path = Path("target/release/graph-node")
    build_command: Tuple[str, ...] = ("cargo", "build", "--release")
    skip_build: bool = False
    working_dir: Path = Path(".")
    extra_args: Tuple[str, ...] = ()
    shutdown_grace_period: float = Field(default=10.0, gt=0)

    @field_validator("chain_endpoints", mode="before")
    @classmethod
    def _split_endpoint_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            if not value.strip():
                return ()
            return tuple(part.strip() for part in value.split(","))
        if isinstance(value, ChainEndpoint):
            return (value,)
        return value

    @field_validator("chain_endpoints")
    @classmethod
    def _check_endpoints(
        cls,
        value: Tuple[ChainEndpoint, ...],
    ) -> Tuple[ChainEndpoint, ...]:
        if not value:
            raise ValueError("at least one chain endpoint is required")
        seen = set()
        for endpoint in value:
            if endpoint.network in seen:
                raise ValueError(f"duplicate network tag {endpoint.network!r}")
            seen.add(endpoint.network)
        return value

    @field_validator("build_command", "extra_args", mode="before")
    @classmethod
    def _split_command_line(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(shlex.split(value))
        return value

    @field_validator("build_command")
    @classmethod
    def _check_build_command(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("build command must not be empty")
        return value

    @property
    def executable(self) -> Path:
        """
        Node binary to execute.

        A bare name is left for a PATH lookup; any other relative path is made
        absolute against the working directory, since the node runs there.
        """
        if self.node_binary.is_absolute() or len(self.node_binary.parts) == 1:
            return self.node_binary
        return (self.working_dir / self.node_binary).absolute()


class BuildResult(BaseModel):
    """Outcome of a successful (or skipped) build step."""

    model_config = ConfigDict(frozen=True)

    command: Tuple[str, ...]
    exit_code: int = 0
    captured_output: str = ""
    duration: float = 0.0
    skipped: bool = False


class ExitOutcome(BaseModel):
    """
    How the node process terminated.

    Attributes:
        code (int): Exit status, or the signal number when ``signaled`` is set.
        signaled (bool): Whether the node was terminated by a signal.
    """

    model_config = ConfigDict(frozen=True)

    code: int
    signaled: bool = False
