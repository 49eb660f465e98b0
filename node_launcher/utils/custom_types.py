from typing import Annotated

from pydantic import AfterValidator, BeforeValidator

LOG_LEVELS = ("error", "warn", "info", "debug", "trace")


def _strip(value: object) -> object:
    return value.strip() if isinstance(value, str) else value


def _require_non_empty(value: str) -> str:
    if not value:
        raise ValueError("must not be empty")
    return value


def _validate_log_directives(value: str) -> str:
    """
    Validate a node log filter such as ``info`` or ``info,graph_chain=debug``.

    Every directive is either a bare level or ``module=level``; levels are
    normalised to lower case, module names are kept as given.
    """
    directives = []
    for raw in value.split(","):
        directive = raw.strip()
        if not directive:
            raise ValueError(f"empty directive in log level {value!r}")
        module, sep, level = directive.rpartition("=")
        if sep and not module:
            raise ValueError(f"missing module name in {directive!r}")
        if level.lower() not in LOG_LEVELS:
            raise ValueError(
                f"unknown log level {level!r}, expected one of {', '.join(LOG_LEVELS)}"
            )
        directives.append(f"{module}={level.lower()}" if sep else level.lower())
    return ",".join(directives)


NonEmptyStr = Annotated[
    str,
    BeforeValidator(_strip),
    AfterValidator(_require_non_empty),
]


LogLevel = Annotated[
    str,
    BeforeValidator(_strip),
    AfterValidator(_require_non_empty),
    AfterValidator(_validate_log_directives),
]
