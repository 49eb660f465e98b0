from enum import IntEnum
from typing import Optional

from pydantic import ValidationError


class ExitCode(IntEnum):
    """Process exit codes reserved by the launcher itself."""

    OK = 0
    LAUNCH_FAILURE = 69
    BUILD_FAILURE = 70
    CONFIG_ERROR = 78
    CHILD_SIGNALED = 79


class LauncherError(Exception):
    """Base class for failures that stop the launcher before the node exits."""

    exit_code: ExitCode = ExitCode.LAUNCH_FAILURE


class ConfigError(LauncherError):
    """
    Raised when the launch configuration is missing a value or is malformed.

    Attributes:
        field (Optional[str]): The configuration field at fault, if known.
    """

    exit_code = ExitCode.CONFIG_ERROR

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        message = super().__str__()
        if self.field:
            return f"{self.field}: {message}"
        return message

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "ConfigError":
        """
        Report the first pydantic validation error against the field it names.

        Further errors are counted in the message rather than dropped.
        """
        error = exc.errors()[0]
        loc = error.get("loc") or ()
        field = str(loc[0]) if loc else None

        if error["type"] == "missing":
            message = "is required"
        else:
            ctx = error.get("ctx") or {}
            message = str(ctx.get("error") or error["msg"])

        if exc.error_count() > 1:
            message = f"{message} (and {exc.error_count() - 1} more error(s))"
        return cls(message, field=field)


class BuildFailure(LauncherError):
    """
    Raised when the build step does not produce the node binary.

    Attributes:
        build_exit_code (Optional[int]): Exit code of the build command, or None
                                         when the command could not be started.
        captured_output (str): Combined stdout/stderr of the build command.
    """

    exit_code = ExitCode.BUILD_FAILURE

    def __init__(self, build_exit_code: Optional[int], captured_output: str) -> None:
        if build_exit_code is None:
            message = "Build command could not be started"
        else:
            message = f"Build command exited with code {build_exit_code}"
        super().__init__(message)
        self.build_exit_code = build_exit_code
        self.captured_output = captured_output


class LaunchFailure(LauncherError):
    """Raised when the node process cannot be started at all."""

    exit_code = ExitCode.LAUNCH_FAILURE

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Could not start node: {cause}")
        self.cause = cause
