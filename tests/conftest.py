"""Shared fixtures: an in-memory stand-in for BwsClient."""
import threading
from dataclasses import replace

import pytest

from agent_bwstoolkit.secrets.domains.errors import ServiceError
from agent_bwstoolkit.secrets.domains.models import DeleteResult, ProjectEntry, SecretEntry


class FakeBwsClient:
    """Implements the BwsClient surface over plain lists.

    Secrets listed in ``fail_updates`` (by key) raise ServiceError on update.
    Setting ``delete_results`` overrides what delete calls return.
    """

    def __init__(self, secrets=None, projects=None):
        self.secrets = list(secrets or [])
        self.projects = list(projects or [])
        self.fail_updates = set()
        self.delete_results = None
        self.calls = []
        self._lock = threading.Lock()
        self._next_id = 0

    def _new_id(self, prefix):
        self._next_id += 1
        return f"{prefix}-new-{self._next_id}"

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def call_names(self):
        return [call[0] for call in self.calls]

    def list_secrets(self):
        self._record("list_secrets")
        return [replace(s) for s in self.secrets]

    def list_projects(self):
        self._record("list_projects")
        return [replace(p) for p in self.projects]

    def create_secret(self, key, value, note, project_ids):
        self._record("create_secret", key, value, note, list(project_ids))
        entry = SecretEntry(
            id=self._new_id("s"),
            key=key,
            value=value,
            note=note,
            project_id=project_ids[0] if project_ids else None,
        )
        self.secrets.append(entry)
        return replace(entry)

    def update_secret(self, secret_id, key, value, note, project_ids):
        self._record("update_secret", secret_id, key, value, note, list(project_ids))
        if key in self.fail_updates:
            raise ServiceError(f"Failed to update secret '{key}': rate limited")
        with self._lock:
            for i, entry in enumerate(self.secrets):
                if entry.id == secret_id:
                    self.secrets[i] = replace(
                        entry,
                        key=key,
                        value=value,
                        note=note,
                        project_id=project_ids[0] if project_ids else None,
                    )
                    return replace(self.secrets[i])
        raise ServiceError(f"Failed to update secret '{key}': not found")

    def delete_secrets(self, ids):
        self._record("delete_secrets", list(ids))
        if self.delete_results is not None:
            return self.delete_results
        self.secrets = [s for s in self.secrets if s.id not in ids]
        return [DeleteResult(id=i) for i in ids]

    def create_project(self, name):
        self._record("create_project", name)
        project = ProjectEntry(id=self._new_id("p"), name=name)
        self.projects.append(project)
        return replace(project)

    def delete_projects(self, ids):
        self._record("delete_projects", list(ids))
        if self.delete_results is not None:
            return self.delete_results
        self.projects = [p for p in self.projects if p.id not in ids]
        return [DeleteResult(id=i) for i in ids]


@pytest.fixture
def sample_projects():
    return [
        ProjectEntry(id="p-lmb", name="lmb"),
        ProjectEntry(id="p-strat", name="strat"),
    ]


@pytest.fixture
def sample_secrets():
    return [
        SecretEntry(id="s-1", key="LMB_DB_URL", value="postgres://lmb", note="primary db", project_id="p-lmb"),
        SecretEntry(id="s-2", key="LMB_API_KEY", value="lmb-key", note="", project_id="p-lmb"),
        SecretEntry(id="s-3", key="STRAT_DB_URL", value="postgres://strat", note=None, project_id="p-strat"),
        SecretEntry(id="s-4", key="GITHUB_TOKEN", value="ghp_123", note=None, project_id=None),
    ]


@pytest.fixture
def fake_client(sample_secrets, sample_projects):
    return FakeBwsClient(secrets=sample_secrets, projects=sample_projects)
