"""
Centralized exception hierarchy for sdk-manage.

Every exception carries the process exit code the command line surfaces
when it escapes an operation:

    1  usage and validation errors
    2  precondition not met (already/not installed, invalid toolchain)
    3  download failure
    4  extraction failure

ExternalToolError carries the exit code of the failing tool instead.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class SdkManageError(Exception):
    """Base exception for all sdk-manage errors."""

    exit_code = 1


class UsageError(SdkManageError):
    """Malformed or missing command-line arguments."""

    exit_code = 1


class ConfigurationError(SdkManageError):
    """Invalid or unreadable configuration file."""

    exit_code = 1


class LockTimeoutError(SdkManageError):
    """Raised when a target lock cannot be acquired within timeout."""

    exit_code = 1


# ============================================================================
# Target Exceptions
# ============================================================================


class TargetError(SdkManageError):
    """Base exception for target lifecycle errors."""

    exit_code = 2


class InvalidTargetNameError(TargetError):
    """Raised when a target name contains characters outside [A-Za-z0-9_.-]."""

    exit_code = 1

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid target name: '{name}'")


class TargetNotInstalledError(TargetError):
    """Raised when an operation needs a target that does not exist."""

    def __init__(self, name: str, detail: str = ""):
        self.name = name
        msg = f"Target '{name}' is not installed"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class DownloadFailedError(TargetError):
    """Raised when a target archive could not be fetched."""

    exit_code = 3


class UnpackError(TargetError):
    """Raised when a target archive could not be extracted."""

    exit_code = 4

    def __init__(self, message: str, low_disk_space: bool = False):
        self.low_disk_space = low_disk_space
        super().__init__(message)


class SandboxError(TargetError):
    """Raised when the sandbox configuration of a target is missing or broken."""

    pass


# ============================================================================
# Toolchain / Package Exceptions
# ============================================================================


class ToolchainError(SdkManageError):
    """Base exception for toolchain-related errors."""

    exit_code = 2


class ToolchainInvalidError(ToolchainError):
    """Raised when a toolchain is unknown or its architecture is unrecognized."""

    def __init__(self, toolchain: str, reason: str = ""):
        self.toolchain = toolchain
        msg = f"Invalid toolchain: {toolchain}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ToolchainAlreadyInstalledError(ToolchainError):
    """Raised when installing a toolchain that is already present."""

    def __init__(self, toolchain: str):
        self.toolchain = toolchain
        super().__init__(f"Toolchain '{toolchain}' is already installed")


class ToolchainNotInstalledError(ToolchainError):
    """Raised when removing a toolchain that is not present."""

    def __init__(self, toolchain: str):
        self.toolchain = toolchain
        super().__init__(f"Toolchain '{toolchain}' is not installed")


# ============================================================================
# External Tool Exceptions
# ============================================================================


class ExternalToolError(SdkManageError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(self, tool: str, returncode: int, message: str = ""):
        self.tool = tool
        self.returncode = returncode
        self.exit_code = returncode if returncode > 0 else 1
        msg = message or f"{tool} failed with exit code {returncode}"
        super().__init__(msg)


class PackageManagerError(ExternalToolError):
    """Raised when the package manager fails."""

    pass


class ToolNotFoundError(SdkManageError):
    """Raised when an external tool is not installed."""

    exit_code = 127

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Required tool not found: {tool}")
