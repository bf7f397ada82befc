from __future__ import annotations

import logging
from typing import Any

from firestore_reader.errors import (
    DocumentNotFoundError,
    MalformedResponseError,
    PaginationLimitError,
    ScopeMismatchError,
)
from firestore_reader.paths import extract_relative_path, get_collection_from_path, normalize_path
from firestore_reader.query import FirestoreQuery
from firestore_reader.request import Request
from firestore_reader.values import unwrap_batch_documents, unwrap_document_fields


LOGGER = logging.getLogger(__name__)


def fetch_page(path: str, page_token: str | None, request: Request) -> dict[str, Any]:
    if page_token:
        request.add_param("pageToken", page_token)
    return request.get(path)


def get(path: str, request: Request) -> dict[str, Any]:
    """Fetch a document or the first page of a collection."""

    return fetch_page(path, None, request)


def fetch_all_pages(path: str, request: Request, *, max_pages: int | None = None) -> list[dict[str, Any]]:
    """Collect the documents of every page of a collection listing.

    Pages are requested one after another until a page arrives without
    ``nextPageToken``. Without ``max_pages`` a server that never stops handing out
    tokens keeps this looping; with it, ``PaginationLimitError`` is raised instead.
    """

    if max_pages is not None and max_pages <= 0:
        raise ValueError("max_pages must be > 0")

    documents: list[dict[str, Any]] = []
    page_token: str | None = None
    page_count = 0
    while True:
        page = fetch_page(path, page_token, request.clone())
        page_count += 1
        documents.extend(page.get("documents") or [])
        page_token = page.get("nextPageToken")
        LOGGER.debug("ページ取得: path=%s page=%s total=%s", path, page_count, len(documents))
        if not page_token:
            return documents
        if max_pages is not None and page_count >= max_pages:
            LOGGER.error("ページ数上限到達: path=%s max_pages=%s", path, max_pages)
            raise PaginationLimitError(path=path, max_pages=max_pages)


def get_document(path: str, request: Request) -> dict[str, Any]:
    document = get(path, request)
    if not document.get("fields"):
        raise DocumentNotFoundError(path)
    return unwrap_document_fields(document)


def get_documents(path: str, request: Request, ids: list[str]) -> list[dict[str, Any] | None]:
    """Fetch documents ``{path}/{id}`` with one ``batchGet`` call.

    ``path`` must already be a full resource name when talking to the live service.
    The result has one entry per id, ``None`` where the document does not exist.
    """

    if not ids:
        raise ValueError("ids must not be empty")
    names = [f"{path}/{doc_id}" for doc_id in ids]
    response = request.post(None, {"documents": names})
    if not isinstance(response, list):
        raise MalformedResponseError(operation="batchGet", response=response)
    return unwrap_batch_documents(response, names)


def get_document_ids(path: str, request: Request) -> list[str]:
    """List the ids of the documents directly inside a collection, subcollections included."""

    collection_path = normalize_path(path)
    prefix = f"{collection_path}/"
    ids: list[str] = []
    for document in query(collection_path, request).select().fetch_raw():
        name = str(document.get("name", ""))
        try:
            relative = extract_relative_path(name)
        except ValueError as exc:
            raise ScopeMismatchError(path=collection_path, name=name) from exc
        if not relative.startswith(prefix):
            raise ScopeMismatchError(path=collection_path, name=name)
        ids.append(relative[len(prefix):])
    return ids


def query(path: str, request: Request) -> FirestoreQuery:
    scope_root, collection_id = get_collection_from_path(path)
    request.route("runQuery")
    return FirestoreQuery(collection_id=collection_id, scope_root=scope_root, request=request)
