# src/fidoenroll/errors.py
"""Typed exceptions and exit codes for the application."""

from enum import IntEnum
from typing import Optional, Sequence


class ExitCode(IntEnum):
    """Enumeration for application exit codes."""
    OK = 0
    UNKNOWN_ERROR = 1
    USER_ABORTED = 2
    CONFIG_ERROR = 10
    COMMAND_FAILED = 11
    TOOL_NOT_FOUND = 12
    DEVICE_NOT_FOUND = 13
    PARSE_ERROR = 14
    INVALID_DEVICE = 15
    CRYPTTAB_MISSING = 16
    PRIVILEGE_ERROR = 17
    ENVIRONMENT_ERROR = 18


class FidoEnrollError(Exception):
    """Base exception for all fidoenroll errors."""
    def __init__(self, message: str, exit_code: ExitCode = ExitCode.UNKNOWN_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def __str__(self) -> str:
        return f"[{self.exit_code.name}] {super().__str__()}"


class UserAbortedError(FidoEnrollError):
    """Raised when the user declines a confirmation prompt."""
    def __init__(self, message: str = "Aborted by user."):
        super().__init__(message, ExitCode.USER_ABORTED)


class ConfigError(FidoEnrollError):
    """Exception for configuration loading or validation errors."""
    def __init__(self, message: str):
        super().__init__(message, ExitCode.CONFIG_ERROR)


class CommandError(FidoEnrollError):
    """An external command exited with a non-zero status."""
    def __init__(self, args: Sequence[str], returncode: int, stderr: Optional[str] = None):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr or ""
        message = f"Command '{' '.join(self.args_list)}' failed with exit code {returncode}."
        if self.stderr.strip():
            message += f"\n{self.stderr.strip()}"
        super().__init__(message, ExitCode.COMMAND_FAILED)


class ToolNotFoundError(FidoEnrollError):
    """An external executable could not be found in PATH."""
    def __init__(self, message: str):
        super().__init__(message, ExitCode.TOOL_NOT_FOUND)


class DeviceNotFoundError(FidoEnrollError):
    """No FIDO2 security key is attached."""
    def __init__(self, message: str):
        super().__init__(message, ExitCode.DEVICE_NOT_FOUND)


class ParseError(FidoEnrollError):
    """Tool output did not match the expected grammar."""
    def __init__(self, message: str, text: str = ""):
        super().__init__(message, ExitCode.PARSE_ERROR)
        self.text = text


class InvalidDeviceError(FidoEnrollError):
    """The selected path is not an existing block device."""
    def __init__(self, message: str):
        super().__init__(message, ExitCode.INVALID_DEVICE)


class CrypttabMissingError(FidoEnrollError):
    """The crypttab file does not exist."""
    def __init__(self, message: str):
        super().__init__(message, ExitCode.CRYPTTAB_MISSING)


class PrivilegeError(FidoEnrollError):
    """The operation needs root privileges."""
    def __init__(self, message: str):
        super().__init__(message, ExitCode.PRIVILEGE_ERROR)


class EnvironmentError(FidoEnrollError):
    """Exception for invalid environment (e.g., bad HOME path)."""
    def __init__(self, message: str):
        super().__init__(message, ExitCode.ENVIRONMENT_ERROR)
