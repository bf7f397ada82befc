from __future__ import annotations

import sys
import unittest
from unittest.mock import patch

from firestore_reader.auth import GoogleCredentialsTokenProvider, StaticTokenProvider
from firestore_reader.errors import AuthError

try:
    from google.auth.exceptions import RefreshError
    import google.auth.transport.requests  # noqa: F401
except ModuleNotFoundError:
    RefreshError = None


class FakeCredentials:
    def __init__(self, *, valid: bool, token: str = "fresh-token", error: Exception | None = None) -> None:
        self.valid = valid
        self.token = "stale-token"
        self._next_token = token
        self._error = error
        self.refresh_count = 0

    def refresh(self, request: object) -> None:
        self.refresh_count += 1
        if self._error is not None:
            raise self._error
        self.token = self._next_token
        self.valid = True


class StaticTokenProviderTest(unittest.TestCase):
    def test_returns_token(self) -> None:
        self.assertEqual(StaticTokenProvider("abc").get_token(), "abc")
        self.assertIsNone(StaticTokenProvider(None).get_token())


class GoogleCredentialsTokenProviderTest(unittest.TestCase):
    def test_valid_credentials_are_not_refreshed(self) -> None:
        credentials = FakeCredentials(valid=True)

        self.assertEqual(GoogleCredentialsTokenProvider(credentials).get_token(), "stale-token")
        self.assertEqual(credentials.refresh_count, 0)

    @unittest.skipIf(RefreshError is None, "google-auth is not installed")
    def test_expired_credentials_are_refreshed(self) -> None:
        credentials = FakeCredentials(valid=False)

        self.assertEqual(GoogleCredentialsTokenProvider(credentials).get_token(), "fresh-token")
        self.assertEqual(credentials.refresh_count, 1)

    @unittest.skipIf(RefreshError is None, "google-auth is not installed")
    def test_refresh_failure_raises_auth_error(self) -> None:
        credentials = FakeCredentials(valid=False, error=RefreshError("invalid_grant"))

        with self.assertRaisesRegex(AuthError, "invalid_grant"):
            GoogleCredentialsTokenProvider(credentials).get_token()

    def test_missing_google_auth_raises(self) -> None:
        with patch.dict(sys.modules, {"google.auth": None}):
            with self.assertRaisesRegex(RuntimeError, "google-auth"):
                GoogleCredentialsTokenProvider.from_info({})
            with self.assertRaisesRegex(RuntimeError, "google-auth"):
                GoogleCredentialsTokenProvider.from_default()


if __name__ == "__main__":
    unittest.main()
