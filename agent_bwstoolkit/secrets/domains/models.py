"""Domain models for secret management."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class SecretEntry:
    """A secret as returned by Bitwarden Secrets Manager.

    ``key`` is the name users operate on. It is not guaranteed to be unique
    across projects.
    """
    id: str
    key: str
    value: Optional[str] = None
    note: Optional[str] = None
    project_id: Optional[str] = None


@dataclass
class ProjectEntry:
    """A project secrets can be assigned to."""
    id: str
    name: str


@dataclass
class DeleteResult:
    """Per-id confirmation returned by a delete call."""
    id: str
    error: Optional[str] = None


@dataclass
class SecretRow:
    """One line of the secrets listing."""
    key: str
    id: str
    project: Optional[str] = None


@dataclass
class SetResult:
    """Outcome of a create-or-update."""
    created: bool
    project_created: bool = False


@dataclass
class Injection:
    """Inject secret ``key`` into a child process as env var or CLI arg."""
    key: str
    mode: str  # "env" or "arg"
    target: str
