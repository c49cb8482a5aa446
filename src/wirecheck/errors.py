"""Exceptions raised while building a verification run."""

from __future__ import annotations


class WirecheckError(Exception):
    """Base class for errors that abort a verification run."""


class ArtifactError(WirecheckError):
    """Raised when an artifact set cannot be read or a record is malformed."""

    def __init__(self, message: str, *, artifact: str = "", line: int = 0) -> None:
        location = f"{artifact}:{line}: " if artifact and line else (f"{artifact}: " if artifact else "")
        super().__init__(f"{location}{message}")
        self.artifact = artifact
        self.line = line


class ReadOnlyViolation(ArtifactError):
    """Raised when a remote artifact fetch would do anything but read."""


class ConfigError(WirecheckError):
    """Raised for an invalid configuration file or value."""
