from __future__ import annotations

import logging
from typing import Any

import httpx

from firestore_reader import reader
from firestore_reader.auth import EMULATOR_TOKEN, GoogleCredentialsTokenProvider, StaticTokenProvider
from firestore_reader.paths import DEFAULT_DATABASE_ID, document_name, documents_root, is_document_path, normalize_path
from firestore_reader.query import FirestoreQuery
from firestore_reader.request import DEFAULT_TIMEOUT_SEC, FirestoreRequest, RequestConfig, TokenProvider
from firestore_reader.settings import AppSettings
from firestore_reader.values import unwrap_document_fields


LOGGER = logging.getLogger(__name__)

FIRESTORE_API_HOST = "https://firestore.googleapis.com"
API_VERSION = "v1"


def _collection_path(path: str) -> str:
    normalized = normalize_path(path)
    if is_document_path(normalized):
        raise ValueError(f"Collection path must have odd segments: {path}")
    return normalized


def _document_path(path: str) -> str:
    normalized = normalize_path(path)
    if not is_document_path(normalized):
        raise ValueError(f"Document path must have even segments: {path}")
    return normalized


class FirestoreClient:
    """Read-only Firestore client over the REST API.

    Each public call starts from a fresh request handle, so parameters set by one
    call never reach another.
    """

    def __init__(
        self,
        project_id: str,
        *,
        database_id: str = DEFAULT_DATABASE_ID,
        token_provider: TokenProvider | None = None,
        http_client: httpx.Client | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        emulator_host: str | None = None,
        max_pages: int | None = None,
    ) -> None:
        self._root = documents_root(project_id, database_id)
        host = f"http://{emulator_host.strip()}" if emulator_host and emulator_host.strip() else FIRESTORE_API_HOST
        self._base_url = f"{host}/{API_VERSION}/{self._root}"
        self._timeout_sec = timeout_sec
        self._max_pages = max_pages
        if token_provider is None and emulator_host:
            token_provider = StaticTokenProvider(EMULATOR_TOKEN)
        self._token_provider = token_provider
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.Client()

    @classmethod
    def from_settings(cls, settings: AppSettings, *, http_client: httpx.Client | None = None) -> "FirestoreClient":
        token_provider: TokenProvider | None = None
        if settings.firestore_emulator_host:
            LOGGER.info("Firestore emulator: %s", settings.firestore_emulator_host)
        elif settings.credentials_path:
            token_provider = GoogleCredentialsTokenProvider.from_file(settings.credentials_path)
        else:
            token_provider = GoogleCredentialsTokenProvider.from_default()
        return cls(
            settings.firestore_project_id,
            database_id=settings.firestore_database_id,
            token_provider=token_provider,
            http_client=http_client,
            timeout_sec=settings.timeout_sec,
            emulator_host=settings.firestore_emulator_host or None,
            max_pages=settings.max_pages,
        )

    @property
    def documents_root(self) -> str:
        return self._root

    @property
    def base_url(self) -> str:
        return self._base_url

    def _request(self) -> FirestoreRequest:
        config = RequestConfig(base_url=self._base_url, timeout_sec=self._timeout_sec)
        return FirestoreRequest(self._http_client, config, token_provider=self._token_provider)

    def get_document(self, path: str) -> dict[str, Any]:
        """Fetch one document as plain values.

        Raises ``DocumentNotFoundError`` when the document has no fields. The live
        service answers a missing document with HTTP 404, which arrives as
        ``FirestoreRequestError`` with ``status_code == 404``; callers treating both as
        "does not exist" should catch both.
        """

        return reader.get_document(_document_path(path), self._request())

    def list_documents(self, collection_path: str) -> list[dict[str, Any]]:
        """Every document of a collection in wire format, following all pages."""

        return reader.fetch_all_pages(_collection_path(collection_path), self._request(), max_pages=self._max_pages)

    def get_documents(
        self,
        collection_path: str,
        ids: list[str] | None = None,
    ) -> list[dict[str, Any] | None]:
        path = _collection_path(collection_path)
        if ids is None:
            return [unwrap_document_fields(document) for document in self.list_documents(path)]

        if isinstance(ids, str):
            raise TypeError("ids must be a list of document IDs, not a single string")
        request = self._request()
        request.route("batchGet")
        return reader.get_documents(document_name(self._root, path), request, list(ids))

    def get_document_ids(self, collection_path: str) -> list[str]:
        return reader.get_document_ids(_collection_path(collection_path), self._request())

    def query(self, collection_path: str) -> FirestoreQuery:
        return reader.query(_collection_path(collection_path), self._request())

    def close(self) -> None:
        if self._owns_client:
            self._http_client.close()

    def __enter__(self) -> "FirestoreClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
