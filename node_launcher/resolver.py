from typing import Any, Dict, Mapping

from loguru import logger
from pydantic import ValidationError

from node_launcher.errors import ConfigError
from node_launcher.models import LaunchConfig


def merge_sources(*sources: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Merge configuration sources, later sources winning field by field.

    A ``None`` value means the source does not supply that field, so it never
    overrides an earlier value. Sequences such as ``chain_endpoints`` are
    replaced as a whole, not concatenated.
    """
    merged: Dict[str, Any] = {}
    for source in sources:
        for key, value in source.items():
            if value is None:
                continue
            merged[key] = value
    return merged


def resolve_config(*sources: Mapping[str, Any]) -> LaunchConfig:
    """
    Build a validated LaunchConfig from defaults and overrides.

    Args:
        *sources: Mappings of LaunchConfig field names to raw values, lowest
                  precedence first (typically settings defaults, then CLI).

    Returns:
        LaunchConfig: The immutable, validated configuration.

    Raises:
        ConfigError: If a required field is missing or empty, no chain endpoint
                     is given, a network tag is duplicated, an endpoint is not
                     in ``networkTag:rpcURL`` form, or any value is invalid.
    """
    merged = merge_sources(*sources)
    try:
        config = LaunchConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError.from_validation_error(exc) from exc

    logger.debug(f"Resolved launch config: {config!r}")
    return config

