#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging

from firestore_reader.client import FirestoreClient
from firestore_reader.settings import load_settings


LOGGER = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print Firestore documents as JSON.")
    parser.add_argument("--path", required=True, help="Document or collection path (e.g. users/123/orders).")
    parser.add_argument(
        "--mode",
        default="documents",
        choices=("document", "ids", "documents"),
        help="document: one document, ids: document IDs of a collection, documents: every document of a collection.",
    )
    parser.add_argument(
        "--id",
        dest="ids",
        action="append",
        default=None,
        help="Document ID to batch-fetch (repeatable, documents mode only).",
    )
    return parser.parse_args()


def run(client: FirestoreClient, *, path: str, mode: str, ids: list[str] | None = None) -> object:
    if mode == "document":
        return client.get_document(path)
    if mode == "ids":
        return client.get_document_ids(path)
    return client.get_documents(path, ids)


def main() -> int:
    args = parse_args()
    settings = load_settings()
    logging.basicConfig(level=settings.log_level_value, format="%(message)s")

    if not settings.firestore_project_id:
        raise ValueError("FIRESTORE_PROJECT_ID が必要です。環境変数か .env に設定してください。")

    with FirestoreClient.from_settings(settings) as client:
        LOGGER.info("取得開始: project=%s path=%s mode=%s", settings.firestore_project_id, args.path, args.mode)
        result = run(client, path=args.path, mode=args.mode, ids=args.ids)
    print(json.dumps(result, ensure_ascii=False, indent=2, default=str))
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as exc:
        LOGGER.error("export failed: %s", exc)
        raise SystemExit(1) from exc
