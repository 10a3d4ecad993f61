"""Exceptions raised by docker-prune-timer."""


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded or fails validation."""


class SystemctlError(RuntimeError):
    """Raised when a systemctl invocation fails or systemctl is unavailable."""

    def __init__(self, command: list[str], returncode: int | None = None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()

        message = f"{' '.join(command)} failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)
