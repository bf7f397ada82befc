from __future__ import annotations

import re


DEFAULT_DATABASE_ID = "(default)"

# projects/{project}/databases/{database}/documents/{collection}/{document}[/...]
RESOURCE_NAME_PATTERN = re.compile(r"^projects/[^/]+/databases/[^/]+/documents/(.+/.+)$")


def split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def normalize_path(path: str) -> str:
    parts = split_path(path or "")
    if not parts:
        raise ValueError(f"Path must not be empty: {path!r}")
    return "/".join(parts)


def is_document_path(path: str) -> bool:
    return len(split_path(path)) % 2 == 0


def get_collection_from_path(path: str) -> tuple[str, str]:
    """Split a collection path into ``(scope_root, collection_id)``.

    ``scope_root`` is the innermost document that owns the collection (empty for a
    top-level collection) and is the target of ``runQuery``.
    """

    parts = split_path(path or "")
    if len(parts) == 0 or len(parts) % 2 == 0:
        raise ValueError(f"Collection path must have odd segments: {path}")
    return "/".join(parts[:-1]), parts[-1]


def documents_root(project_id: str, database_id: str = DEFAULT_DATABASE_ID) -> str:
    project = project_id.strip()
    if not project:
        raise ValueError("project_id is required")
    return f"projects/{project}/databases/{database_id}/documents"


def document_name(root: str, path: str) -> str:
    return f"{root}/{normalize_path(path)}"


def extract_relative_path(name: str) -> str:
    match = RESOURCE_NAME_PATTERN.match(name or "")
    if match is None:
        raise ValueError(f"Not a Firestore document name: {name}")
    return match.group(1)
