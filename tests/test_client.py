from __future__ import annotations

import json
from typing import Any, Callable
import unittest

import httpx

from firestore_reader.auth import StaticTokenProvider
from firestore_reader.client import FirestoreClient
from firestore_reader.errors import DocumentNotFoundError
from firestore_reader.settings import load_settings


ROOT = "projects/demo/databases/(default)/documents"


class FakeFirestoreService:
    """Answers Firestore REST calls from canned responses keyed by method and path suffix."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], Any]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, suffix: str, payload: Any | Callable[[httpx.Request], Any]) -> None:
        self.routes[(method, suffix)] = payload if callable(payload) else (lambda _request: payload)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for (method, suffix), handler in self.routes.items():
            if request.method == method and request.url.path.endswith(suffix):
                return httpx.Response(200, json=handler(request))
        return httpx.Response(404, json={"error": {"message": f"no route for {request.url.path}"}})


def _client(service: FakeFirestoreService, **kwargs: Any) -> FirestoreClient:
    http_client = httpx.Client(transport=httpx.MockTransport(service))
    return FirestoreClient(
        "demo",
        http_client=http_client,
        token_provider=kwargs.pop("token_provider", StaticTokenProvider("token")),
        **kwargs,
    )


def _body(request: httpx.Request) -> Any:
    return json.loads(request.content)


class FirestoreClientTest(unittest.TestCase):
    def test_get_document(self) -> None:
        service = FakeFirestoreService()
        service.on(
            "GET",
            "/documents/users/1",
            {"name": f"{ROOT}/users/1", "fields": {"nick": {"stringValue": "taro"}}},
        )

        with _client(service) as client:
            self.assertEqual(client.get_document("/users/1/"), {"nick": "taro"})
        self.assertEqual(service.requests[0].headers["Authorization"], "Bearer token")

    def test_get_document_without_fields(self) -> None:
        service = FakeFirestoreService()
        service.on("GET", "/documents/users/1", {"name": f"{ROOT}/users/1"})

        with self.assertRaises(DocumentNotFoundError):
            _client(service).get_document("users/1")

    def test_path_parity_is_checked(self) -> None:
        client = _client(FakeFirestoreService())

        with self.assertRaises(ValueError):
            client.get_document("users")
        with self.assertRaises(ValueError):
            client.get_document_ids("users/1")
        with self.assertRaises(ValueError):
            client.query("users/1")

    def test_get_documents_follows_pages(self) -> None:
        service = FakeFirestoreService()

        def pages(request: httpx.Request) -> Any:
            if request.url.params.get("pageToken") == "next":
                return {"documents": [{"name": f"{ROOT}/users/2", "fields": {"n": {"integerValue": "2"}}}]}
            return {
                "documents": [{"name": f"{ROOT}/users/1", "fields": {"n": {"integerValue": "1"}}}],
                "nextPageToken": "next",
            }

        service.on("GET", "/documents/users", pages)

        documents = _client(service).get_documents("users")

        self.assertEqual(documents, [{"n": 1}, {"n": 2}])
        self.assertEqual(len(service.requests), 2)
        self.assertNotIn("pageToken", service.requests[0].url.params)

    def test_get_documents_by_id_uses_batch_get(self) -> None:
        service = FakeFirestoreService()
        service.on(
            "POST",
            "/documents:batchGet",
            [
                {"missing": f"{ROOT}/users/b"},
                {"found": {"name": f"{ROOT}/users/a", "fields": {"n": {"integerValue": "1"}}}},
            ],
        )

        documents = _client(service).get_documents("users", ["a", "b"])

        self.assertEqual(documents, [{"n": 1}, None])
        self.assertEqual(_body(service.requests[0]), {"documents": [f"{ROOT}/users/a", f"{ROOT}/users/b"]})

    def test_get_documents_rejects_single_string(self) -> None:
        service = FakeFirestoreService()

        with self.assertRaises(TypeError):
            _client(service).get_documents("users", "abc")
        self.assertEqual(service.requests, [])

    def test_get_document_ids_nested(self) -> None:
        service = FakeFirestoreService()
        service.on(
            "POST",
            "/documents/users/123:runQuery",
            [
                {"document": {"name": f"{ROOT}/users/123/orders/456"}, "readTime": "2026-01-01T00:00:00Z"},
                {"readTime": "2026-01-01T00:00:00Z"},
            ],
        )

        self.assertEqual(_client(service).get_document_ids("users/123/orders"), ["456"])

    def test_query_execute(self) -> None:
        service = FakeFirestoreService()
        service.on(
            "POST",
            "/documents:runQuery",
            [
                {"document": {"name": f"{ROOT}/users/1", "fields": {"age": {"integerValue": "30"}}}},
                {"readTime": "2026-01-01T00:00:00Z"},
            ],
        )

        documents = _client(service).query("users").where("age", ">=", 20).limit(10).execute()

        self.assertEqual(documents, [{"age": 30}])
        structured = _body(service.requests[0])["structuredQuery"]
        self.assertEqual(structured["from"], [{"collectionId": "users"}])
        self.assertEqual(structured["limit"], 10)

    def test_emulator_host(self) -> None:
        service = FakeFirestoreService()
        service.on("GET", "/documents/users/1", {"fields": {"a": {"booleanValue": True}}})
        client = _client(service, emulator_host="localhost:8080", token_provider=None)

        self.assertEqual(client.base_url, f"http://localhost:8080/v1/{ROOT}")
        client.get_document("users/1")
        self.assertEqual(service.requests[0].headers["Authorization"], "Bearer owner")
        self.assertEqual(service.requests[0].url.host, "localhost")

    def test_from_settings_with_emulator(self) -> None:
        settings = load_settings(
            env={"FIRESTORE_PROJECT_ID": "demo", "FIRESTORE_EMULATOR_HOST": "localhost:8080", "FIRESTORE_MAX_PAGES": "3"},
            dotenv_path="does-not-exist.env",
        )

        client = FirestoreClient.from_settings(settings, http_client=httpx.Client())

        self.assertEqual(client.documents_root, ROOT)
        self.assertTrue(client.base_url.startswith("http://localhost:8080/v1/"))


if __name__ == "__main__":
    unittest.main()
