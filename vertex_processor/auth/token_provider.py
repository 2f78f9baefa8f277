import asyncio
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

import google.auth
import google.auth.exceptions
from google.auth.credentials import Credentials
from google.auth.transport.requests import Request

from vertex_processor.logging.logger import Log

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
DATASTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
_GCP_RUNTIME_ENV = ("K_SERVICE", "FUNCTION_TARGET", "GAE_ENV", "GCE_METADATA_HOST")


def detect_auth_mode(environ: Mapping[str, str] | None = None) -> str:
    """``adc`` on a Google runtime, ``key-file`` when a credentials file is set, else ``adc-local``."""
    env = os.environ if environ is None else environ
    if any(env.get(name) for name in _GCP_RUNTIME_ENV):
        return "adc"
    if env.get("GOOGLE_APPLICATION_CREDENTIALS"):
        return "key-file"
    return "adc-local"


def has_credentials_file(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return bool(env.get("GOOGLE_APPLICATION_CREDENTIALS"))


class AuthError(Exception):
    """Raised when an access token cannot be obtained."""


class TokenProvider(ABC):
    """Contract for resolving OAuth access tokens for a set of scopes."""

    @abstractmethod
    async def get_token(self, scopes: Sequence[str]) -> str:
        """Return a bearer token valid for ``scopes``.

        Raises:
            AuthError: when no credentials are available.
        """

    async def get_project_id(self) -> str | None:
        return None


class StaticTokenProvider(TokenProvider):
    """Returns a fixed token. Used locally and in tests."""

    def __init__(self, token: str, project_id: str | None = None) -> None:
        self._token = token
        self._project_id = project_id

    async def get_token(self, scopes: Sequence[str]) -> str:
        return self._token

    async def get_project_id(self) -> str | None:
        return self._project_id


class GoogleTokenProvider(TokenProvider):
    """Application Default Credentials, cached per scope set.

    Refreshing is blocking, so it runs in a worker thread.
    """

    def __init__(self) -> None:
        self._credentials: dict[tuple[str, ...], Credentials] = {}
        self._project_id: str | None = None
        self._lock = threading.Lock()

    async def get_token(self, scopes: Sequence[str]) -> str:
        key = tuple(sorted(set(scopes)))
        return await asyncio.to_thread(self._token_for, key)

    async def get_project_id(self) -> str | None:
        if self._project_id is None:
            await asyncio.to_thread(self._token_for, (CLOUD_PLATFORM_SCOPE,))
        return self._project_id

    def _token_for(self, scopes: tuple[str, ...]) -> str:
        with self._lock:
            try:
                credentials = self._credentials.get(scopes)
                if credentials is None:
                    credentials, project_id = google.auth.default(scopes=list(scopes))
                    self._credentials[scopes] = credentials
                    if project_id and self._project_id is None:
                        self._project_id = project_id
                if not credentials.valid:
                    credentials.refresh(Request())
            except google.auth.exceptions.GoogleAuthError as exc:
                raise AuthError(f"Failed to obtain Google access token: {exc}") from exc
        if not credentials.token:
            raise AuthError("Failed to obtain Google access token")
        Log.debug(f"Access token ready for scopes {', '.join(scopes)}")
        return credentials.token
