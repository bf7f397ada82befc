from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Any, Protocol

import httpx

from firestore_reader.errors import FirestoreRequestError


LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 30.0


class Request(Protocol):
    def get(self, path: str | None) -> Any:
        """GET a document or collection."""

    def post(self, target: str | None, body: Any) -> Any:
        """POST a body; ``None`` targets the documents root."""

    def add_param(self, name: str, value: Any) -> None:
        """Attach a query parameter to subsequent calls."""

    def route(self, name: str | None) -> None:
        """Select the API method (``runQuery``, ``batchGet``)."""

    def clone(self) -> "Request":
        """Copy the handle; later changes do not leak between copies."""


class TokenProvider(Protocol):
    def get_token(self) -> str | None:
        """Return a bearer token, or None to send unauthenticated requests."""


@dataclass(frozen=True)
class RequestConfig:
    """Immutable transport configuration for one Firestore REST call."""

    base_url: str
    route: str | None = None
    params: tuple[tuple[str, str], ...] = ()
    timeout_sec: float = DEFAULT_TIMEOUT_SEC

    def with_param(self, name: str, value: Any) -> "RequestConfig":
        return replace(self, params=self.params + ((name, str(value)),))

    def with_route(self, name: str | None) -> "RequestConfig":
        return replace(self, route=name or None)

    def url_for(self, path: str | None) -> str:
        url = self.base_url.rstrip("/")
        relative = (path or "").strip("/")
        if relative:
            url = f"{url}/{relative}"
        if self.route:
            url = f"{url}:{self.route}"
        return url


class FirestoreRequest:
    """Request handle over ``httpx.Client``.

    ``add_param`` and ``route`` swap in a new ``RequestConfig``; ``clone`` hands out a
    second handle starting from the current config, so later changes to either
    handle are not seen by the other.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        config: RequestConfig,
        *,
        token_provider: TokenProvider | None = None,
    ) -> None:
        self._http_client = http_client
        self._config = config
        self._token_provider = token_provider

    @property
    def config(self) -> RequestConfig:
        return self._config

    def add_param(self, name: str, value: Any) -> None:
        self._config = self._config.with_param(name, value)

    def route(self, name: str | None) -> None:
        self._config = self._config.with_route(name)

    def clone(self) -> "FirestoreRequest":
        return FirestoreRequest(self._http_client, self._config, token_provider=self._token_provider)

    def get(self, path: str | None) -> Any:
        return self._send("GET", path)

    def post(self, target: str | None, body: Any) -> Any:
        return self._send("POST", target, body=body)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self._token_provider.get_token() if self._token_provider is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(self, method: str, path: str | None, *, body: Any = None) -> Any:
        config = self._config
        url = config.url_for(path)
        LOGGER.debug("Firestore request: method=%s url=%s params=%s", method, url, dict(config.params))
        try:
            response = self._http_client.request(
                method,
                url,
                params=list(config.params),
                json=body,
                headers=self._headers(),
                timeout=config.timeout_sec,
            )
        except httpx.HTTPError as exc:
            raise FirestoreRequestError(method=method, url=url, reason=str(exc) or exc.__class__.__name__) from exc

        if response.status_code >= 400:
            raise FirestoreRequestError(
                method=method,
                url=url,
                status_code=response.status_code,
                reason=_error_reason(response),
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise FirestoreRequestError(
                method=method,
                url=url,
                status_code=response.status_code,
                reason=f"invalid JSON response: {exc}",
            ) from exc


def _error_reason(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    # runQuery/batchGet answer with a one-element list on failure.
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text
