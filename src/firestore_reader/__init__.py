from firestore_reader.client import FirestoreClient
from firestore_reader.errors import (
    AuthError,
    DocumentNotFoundError,
    FirestoreError,
    FirestoreRequestError,
    MalformedResponseError,
    PaginationLimitError,
    ScopeMismatchError,
)
from firestore_reader.query import FirestoreQuery

__all__ = [
    "AuthError",
    "DocumentNotFoundError",
    "FirestoreClient",
    "FirestoreError",
    "FirestoreQuery",
    "FirestoreRequestError",
    "MalformedResponseError",
    "PaginationLimitError",
    "ScopeMismatchError",
]
