from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL

from node_launcher.errors import ConfigError

LOGURU_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Settings configuration class for the node launcher."""

    app_name: str = "node-launcher"

    # Datastore Configuration
    postgres_host: str = "localhost"
    postgres_port: int = 5433
    postgres_user: str = "admin"
    postgres_password: Optional[str] = "123123"
    postgres_db: str = "graph-node"
    # Takes precedence over the postgres_* parts when set
    datastore_url: Optional[str] = None

    @property
    def postgres_url(self) -> URL:
        """
        Assemble postgres URL from settings.

        :return: postgres URL.
        """
        return URL.build(
            scheme="postgresql",
            user=self.postgres_user,
            password=self.postgres_password,
            host=self.postgres_host,
            port=self.postgres_port,
            path=f"/{self.postgres_db}",
        )

    # IPFS Configuration
    content_store_endpoint: str = "localhost:5002"

    # Chain Configuration, comma separated network:rpc_url entries
    chain_endpoints: str = "base:https://base-rpc.publicnode.com"

    # Node Configuration
    log_level: str = "info"
    node_binary: Path = Path("target/release/graph-node")
    build_command: str = "cargo build --release"
    skip_build: bool = False
    working_dir: Path = Path(".")
    shutdown_grace_period: float = 10.0  # Seconds before the node is killed

    # Launcher's own log level
    launcher_log_level: str = "INFO"

    @field_validator("launcher_log_level")
    @classmethod
    def check_launcher_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOGURU_LEVELS:
            raise ValueError(
                f"unknown level {value!r}, expected one of {', '.join(LOGURU_LEVELS)}")
        return level

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NODE_LAUNCHER_",
        env_file_encoding="utf-8",
    )

    def launch_defaults(self) -> Dict[str, Any]:
        """
        Return the launch configuration fields these settings provide.

        The result is the lowest-precedence source for ``resolve_config``.
        """
        return {
            "datastore_url": self.datastore_url or str(self.postgres_url),
            "content_store_endpoint": self.content_store_endpoint,
            "chain_endpoints": self.chain_endpoints,
            "log_level": self.log_level,
            "node_binary": self.node_binary,
            "build_command": self.build_command,
            "skip_build": self.skip_build,
            "working_dir": self.working_dir,
            "shutdown_grace_period": self.shutdown_grace_period,
        }


def load_settings(**values: Any) -> Settings:
    """
    Read settings from the environment and `.env`, reporting bad values.

    Raises:
        ConfigError: If an environment value cannot be parsed, for example a
                     non-numeric `NODE_LAUNCHER_POSTGRES_PORT`.
    """
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError.from_validation_error(exc) from exc
