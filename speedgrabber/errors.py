"""Exception hierarchy for speedgrabber."""


class SpeedGrabberError(Exception):
    """Base class for all speedgrabber errors."""


class ConfigError(SpeedGrabberError):
    """Raised when configuration validation fails."""


class PreflightError(SpeedGrabberError):
    """Raised when the scan root is unusable; nothing has been started yet."""


class InvalidTransition(SpeedGrabberError):
    """Raised when a transfer unit status would move backwards."""


class TransferError(SpeedGrabberError):
    """A single transfer attempt failed."""


class TransferTimeout(TransferError):
    """A transfer attempt exceeded its deadline."""


class CommandError(TransferError):
    """External transfer command exited with a non-zero status."""

    def __init__(self, command, returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"command exited with status {returncode}{detail}")
