"""Workflows for secret and project operations.

Every operation fetches a fresh inventory from Bitwarden; nothing is cached
between calls. Key lookups go through the first-wins indexes in
``domains.patterns`` so reads, updates and deletes agree on which duplicate
they act on.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..domains.batch import BATCH_SIZE, BatchOutcome, run_in_batches
from ..domains.bws_client import BwsClient
from ..domains.errors import ProjectNotFoundError, SecretNotFoundError, ServiceError
from ..domains.models import ProjectEntry, SecretEntry, SecretRow, SetResult
from ..domains.patterns import (
    build_key_index,
    build_project_id_map,
    build_project_index,
    count_key,
    filter_matching,
)

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    """Outcome of a bulk move, one BatchOutcome per matched secret."""
    project: ProjectEntry
    project_created: bool
    outcomes: List[BatchOutcome[SecretEntry]] = field(default_factory=list)

    @property
    def moved(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.moved


def _resolve_secret(secrets: Sequence[SecretEntry], key: str, action: str) -> SecretEntry:
    """First secret named ``key``; warns when the key is ambiguous."""
    entry = build_key_index(secrets).get(key)
    if entry is None:
        raise SecretNotFoundError(key)
    duplicates = count_key(secrets, key)
    if duplicates > 1:
        logger.warning(f"Warning: {duplicates} secrets named '{key}' found across projects - {action} the first match")
    return entry


def _confirm_deleted(kind: str, name: str, results: Sequence) -> None:
    """A delete call only counts as done when the server confirms it."""
    if not results:
        raise ServiceError(f"Failed to delete {kind} '{name}': no confirmation from server")
    if results[0].error:
        raise ServiceError(f"Failed to delete {kind} '{name}': {results[0].error}")


def resolve_or_create_project(client: BwsClient, name: str) -> Tuple[ProjectEntry, bool]:
    """
    Find a project by name, creating it if absent.

    Returns:
        (project, created) where created is True if the project was new
    """
    existing = build_project_index(client.list_projects()).get(name)
    if existing is not None:
        return existing, False
    logger.info(f"Project '{name}' not found, creating it")
    return client.create_project(name), True


def list_secrets(client: BwsClient, project_name: Optional[str] = None) -> List[SecretRow]:
    """
    List secrets with their project names.

    Args:
        client: Bitwarden client
        project_name: Only include secrets assigned to this project

    Returns:
        Rows sorted case-insensitively by project name (unassigned first), then key

    Raises:
        ProjectNotFoundError: If project_name does not exist
    """
    projects = client.list_projects()
    project_names = build_project_id_map(projects)
    secrets = client.list_secrets()

    if project_name is not None:
        project = build_project_index(projects).get(project_name)
        if project is None:
            raise ProjectNotFoundError(project_name)
        secrets = [s for s in secrets if s.project_id == project.id]

    rows = [
        SecretRow(key=s.key, id=s.id, project=project_names.get(s.project_id) if s.project_id else None)
        for s in secrets
    ]
    rows.sort(key=lambda row: ((row.project or "").casefold(), row.key.casefold(), row.project or "", row.key))
    return rows


def get_secret(client: BwsClient, key: str) -> str:
    """
    Return the value of the secret named ``key``.

    Raises:
        SecretNotFoundError: If no secret has this key
        ServiceError: If the secret came back without a value
    """
    secret = _resolve_secret(client.list_secrets(), key, "reading")
    if secret.value is None:
        raise ServiceError(f"Secret '{key}' returned no value")
    return secret.value


def set_secret(
    client: BwsClient,
    key: str,
    value: str,
    note: Optional[str] = None,
    project_name: Optional[str] = None,
) -> SetResult:
    """
    Create or update the secret named ``key``.

    On update, the previous note is kept when ``note`` is None and the
    previous project is kept when ``project_name`` is not given. A project
    named by ``project_name`` is created if it does not exist.
    """
    project_ids: List[str] = []
    project_created = False
    if project_name is not None:
        project, project_created = resolve_or_create_project(client, project_name)
        project_ids = [project.id]

    secrets = client.list_secrets()
    if key not in build_key_index(secrets):
        client.create_secret(key, value, note if note is not None else "", project_ids)
        logger.info(f"Created secret '{key}'")
        return SetResult(created=True, project_created=project_created)

    current = _resolve_secret(secrets, key, "updating")
    final_note = note if note is not None else current.note
    if not project_ids and current.project_id:
        project_ids = [current.project_id]
    client.update_secret(current.id, key, value, final_note, project_ids)
    logger.info(f"Updated secret '{key}'")
    return SetResult(created=False, project_created=project_created)


def delete_secret(client: BwsClient, key: str) -> SecretEntry:
    """
    Delete the secret named ``key``.

    Raises:
        SecretNotFoundError: If no secret has this key
        ServiceError: If the server reports an error or sends no confirmation
    """
    secret = _resolve_secret(client.list_secrets(), key, "deleting")
    _confirm_deleted("secret", key, client.delete_secrets([secret.id]))
    return secret


def move_secrets(
    client: BwsClient,
    pattern: str,
    project_name: str,
    batch_size: int = BATCH_SIZE,
) -> MoveResult:
    """
    Assign every secret whose key matches ``pattern`` to ``project_name``.

    Updates run through the bounded batch executor; a failed update is
    recorded in the result and never stops the others.

    Raises:
        SecretNotFoundError: If nothing matches the pattern
    """
    project, created = resolve_or_create_project(client, project_name)

    matches = filter_matching(client.list_secrets(), pattern)
    if not matches:
        raise SecretNotFoundError(pattern, f"No secrets found matching '{pattern}'")

    logger.info(f"Moving {len(matches)} secret(s) to '{project_name}' in batches of {batch_size}")

    def move_one(secret: SecretEntry):
        return asyncio.to_thread(
            client.update_secret, secret.id, secret.key, secret.value, secret.note, [project.id]
        )

    outcomes = asyncio.run(run_in_batches(matches, move_one, batch_size))
    return MoveResult(project=project, project_created=created, outcomes=outcomes)


def list_projects(client: BwsClient) -> List[str]:
    """Project names, sorted."""
    return sorted(p.name for p in client.list_projects())


def create_project(client: BwsClient, name: str) -> ProjectEntry:
    return client.create_project(name)


def delete_project(client: BwsClient, name: str) -> ProjectEntry:
    """
    Delete the project named ``name`` (first match).

    Raises:
        ProjectNotFoundError: If no project has this name
        ServiceError: If the server reports an error or sends no confirmation
    """
    project = build_project_index(client.list_projects()).get(name)
    if project is None:
        raise ProjectNotFoundError(name)
    _confirm_deleted("project", name, client.delete_projects([project.id]))
    return project


def fetch_secret_values(client: BwsClient, keys: Sequence[str]) -> Dict[str, str]:
    """
    Fetch the values of ``keys`` in a single round trip.

    Raises:
        SecretNotFoundError: On the first requested key that does not exist
        ServiceError: If a requested secret came back without a value
    """
    index = build_key_index(client.list_secrets())
    values: Dict[str, str] = {}
    for key in keys:
        secret = index.get(key)
        if secret is None:
            raise SecretNotFoundError(key, f"Secret '{key}' not found in Bitwarden Secrets Manager")
        if secret.value is None:
            raise ServiceError(f"Secret '{key}' returned no value")
        values[key] = secret.value
    return values
