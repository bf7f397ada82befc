from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Mapping

from firestore_reader.errors import AuthError


LOGGER = logging.getLogger(__name__)

DATASTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
EMULATOR_TOKEN = "owner"


@dataclass(frozen=True)
class StaticTokenProvider:
    token: str | None

    def get_token(self) -> str | None:
        return self.token


def _require_google_auth() -> None:
    try:
        import google.auth  # noqa: F401
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "google-auth が未インストールです。`pip install -e '.[gcp]'` を実行してください。"
        ) from exc


def _service_account_module() -> Any:
    _require_google_auth()
    from google.oauth2 import service_account

    return service_account


class GoogleCredentialsTokenProvider:
    """Access tokens from google-auth credentials, refreshed when expired."""

    def __init__(self, credentials: Any) -> None:
        self._credentials = credentials

    @classmethod
    def from_file(cls, path: str) -> "GoogleCredentialsTokenProvider":
        service_account = _service_account_module()
        credentials = service_account.Credentials.from_service_account_file(path, scopes=[DATASTORE_SCOPE])
        return cls(credentials)

    @classmethod
    def from_info(cls, info: Mapping[str, Any]) -> "GoogleCredentialsTokenProvider":
        service_account = _service_account_module()
        credentials = service_account.Credentials.from_service_account_info(dict(info), scopes=[DATASTORE_SCOPE])
        return cls(credentials)

    @classmethod
    def from_default(cls) -> "GoogleCredentialsTokenProvider":
        """Application Default Credentials (GOOGLE_APPLICATION_CREDENTIALS, gcloud, metadata server)."""

        _require_google_auth()
        import google.auth
        from google.auth.exceptions import DefaultCredentialsError

        try:
            credentials, _ = google.auth.default(scopes=[DATASTORE_SCOPE])
        except DefaultCredentialsError as exc:
            raise AuthError(f"application default credentials are not available: {exc}") from exc
        return cls(credentials)

    def get_token(self) -> str | None:
        if not self._credentials.valid:
            from google.auth.exceptions import GoogleAuthError
            from google.auth.transport.requests import Request

            try:
                self._credentials.refresh(Request())
            except GoogleAuthError as exc:
                LOGGER.error("アクセストークン取得失敗: %s", exc)
                raise AuthError(f"failed to refresh access token: {exc}") from exc
        return self._credentials.token
