from __future__ import annotations


class FirestoreError(RuntimeError):
    """Base error for Firestore REST reads."""


class DocumentNotFoundError(FirestoreError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"No document with `fields` found at path {path}")


class ScopeMismatchError(FirestoreError):
    def __init__(self, *, path: str, name: str) -> None:
        self.path = path
        self.name = name
        super().__init__(f"document {name!r} is not inside queried path {path!r}")


class PaginationLimitError(FirestoreError):
    def __init__(self, *, path: str, max_pages: int) -> None:
        self.path = path
        self.max_pages = max_pages
        super().__init__(f"pagination for {path} did not finish within {max_pages} pages")


class FirestoreRequestError(FirestoreError):
    def __init__(
        self,
        *,
        method: str,
        url: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        self.method = method
        self.url = url
        self.status_code = status_code
        self.reason = reason.strip() or "unknown error"
        status = f"HTTP {status_code}" if status_code is not None else "request error"
        super().__init__(f"{method} {url} failed ({status}): {self.reason}")


class AuthError(FirestoreError):
    """Raised when an access token cannot be obtained."""


class MalformedResponseError(FirestoreError):
    def __init__(self, *, operation: str, response: object) -> None:
        self.operation = operation
        self.response = response
        super().__init__(f"{operation} returned {type(response).__name__}, expected a list: {response!r}")
