"""Bitwarden Secrets Manager client wrapper."""
import hashlib
import logging
import tempfile
from pathlib import Path
from typing import Any, Callable, List, Optional

from bitwarden_sdk import BitwardenClient, DeviceType, client_settings_from_dict

from .config_loader import BwsSettings
from .errors import ServiceError
from .models import DeleteResult, ProjectEntry, SecretEntry

logger = logging.getLogger(__name__)

USER_AGENT = "agent-bwstoolkit"


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _secret_from_response(response: Any) -> SecretEntry:
    return SecretEntry(
        id=str(response.id),
        key=response.key,
        value=getattr(response, "value", None),
        note=getattr(response, "note", None),
        project_id=_optional_str(getattr(response, "project_id", None)),
    )


def _project_from_response(response: Any) -> ProjectEntry:
    return ProjectEntry(id=str(response.id), name=response.name)


def _delete_results(response: Any) -> List[DeleteResult]:
    items = getattr(response.data, "data", None) or []
    return [DeleteResult(id=str(item.id), error=item.error) for item in items]


class BwsClient:
    """Wrapper around the Bitwarden SDK client, bound to one organization."""

    def __init__(self, settings: BwsSettings):
        self.settings = settings
        self._client = None

    @property
    def organization_id(self) -> str:
        return self.settings.organization_id

    def state_file(self) -> Path:
        """SDK state file, keyed by token hash so different tokens never share state."""
        token_hash = hashlib.sha256(self.settings.access_token.encode("utf-8")).hexdigest()[:16]
        state_dir = Path(self.settings.state_dir or tempfile.gettempdir())
        return state_dir / f".bwstoolkit-state-{token_hash}"

    @property
    def client(self) -> BitwardenClient:
        """Lazy-initialize and log in on first use."""
        if self._client is None:
            client = BitwardenClient(client_settings_from_dict({
                "apiUrl": self.settings.api_url,
                "identityUrl": self.settings.identity_url,
                "userAgent": USER_AGENT,
                "deviceType": DeviceType.SDK,
            }))
            try:
                client.auth().login_access_token(self.settings.access_token, str(self.state_file()))
            except Exception as e:
                raise ServiceError(f"Bitwarden authentication failed: {e}") from e
            logger.info(f"Authenticated to {self.settings.api_url}")
            self._client = client
        return self._client

    def _call(self, action: str, fn: Callable[[], Any]) -> Any:
        """Run one SDK call, turning any failure into ServiceError."""
        try:
            response = fn()
        except ServiceError:
            raise
        except Exception as e:
            raise ServiceError(f"Failed to {action}: {e}") from e
        if getattr(response, "success", True) is False:
            raise ServiceError(f"Failed to {action}: {getattr(response, 'error_message', None) or 'unknown error'}")
        return response

    def list_secrets(self) -> List[SecretEntry]:
        """All secrets with key, value, note and project in one round trip."""
        response = self._call("sync secrets", lambda: self.client.secrets().sync(self.organization_id, None))
        secrets = getattr(response.data, "secrets", None) or []
        return [_secret_from_response(s) for s in secrets]

    def list_projects(self) -> List[ProjectEntry]:
        response = self._call("list projects", lambda: self.client.projects().list(self.organization_id))
        projects = getattr(response.data, "data", None) or []
        return [_project_from_response(p) for p in projects]

    def create_secret(self, key: str, value: str, note: str, project_ids: List[str]) -> SecretEntry:
        response = self._call(
            f"create secret '{key}'",
            lambda: self.client.secrets().create(self.organization_id, key, value, note, project_ids),
        )
        return _secret_from_response(response.data)

    def update_secret(
        self,
        secret_id: str,
        key: str,
        value: Optional[str],
        note: Optional[str],
        project_ids: List[str],
    ) -> SecretEntry:
        response = self._call(
            f"update secret '{key}'",
            lambda: self.client.secrets().update(self.organization_id, secret_id, key, value, note, project_ids),
        )
        return _secret_from_response(response.data)

    def delete_secrets(self, ids: List[str]) -> List[DeleteResult]:
        response = self._call("delete secrets", lambda: self.client.secrets().delete(ids))
        return _delete_results(response)

    def create_project(self, name: str) -> ProjectEntry:
        response = self._call(
            f"create project '{name}'",
            lambda: self.client.projects().create(self.organization_id, name),
        )
        return _project_from_response(response.data)

    def delete_projects(self, ids: List[str]) -> List[DeleteResult]:
        response = self._call("delete projects", lambda: self.client.projects().delete(ids))
        return _delete_results(response)
