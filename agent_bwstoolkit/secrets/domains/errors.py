"""Exceptions raised by secret and project operations."""
from typing import Optional


class BwsToolkitError(Exception):
    """Base exception for agent-bwstoolkit runtime errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class SecretNotFoundError(BwsToolkitError):
    """Raised when a key or pattern resolves to no secrets."""

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(message or f"Secret '{key}' not found")
        self.key = key


class ProjectNotFoundError(BwsToolkitError):
    """Raised when a project name resolves to no project."""

    def __init__(self, name: str):
        super().__init__(f"Project '{name}' not found")
        self.name = name


class ServiceError(BwsToolkitError):
    """Raised when Bitwarden rejects a call or fails to confirm it."""


class LaunchError(BwsToolkitError):
    """Raised when the wrapped child process cannot be started."""
