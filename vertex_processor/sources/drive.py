"""Google Drive folder listing and download."""

import re
from typing import Any
from urllib.parse import urlparse

import httpx

from vertex_processor.auth.token_provider import DRIVE_READONLY_SCOPE, TokenProvider
from vertex_processor.sources.base import DRIVE, PDF_MIME_TYPE, BaseFileSource, DownloadedFile, SourceFile
from vertex_processor.sources.exceptions import (
    InvalidLocatorError,
    SourceDownloadError,
    SourceListError,
)

FILES_URL = "https://www.googleapis.com/drive/v3/files"
MAX_PAGE_SIZE = 1000
_VALID_ID = re.compile(r"^[A-Za-z0-9_-]+$")
_SCOPE_ERROR = re.compile(
    r"ACCESS_TOKEN_SCOPE_INSUFFICIENT|insufficientPermissions|PERMISSION_DENIED",
    re.IGNORECASE,
)


def extract_folder_id(folder_ref: str | None) -> str:
    """Accept a raw folder id or a ``.../folders/<id>`` link.

    Raises:
        InvalidLocatorError: if no valid id can be found.
    """
    ref = (folder_ref or "").strip()
    folder_id: str | None = ref
    if re.match(r"^https?://", ref, re.IGNORECASE):
        parts = [p for p in urlparse(ref).path.split("/") if p]
        folder_id = None
        if "folders" in parts:
            index = parts.index("folders")
            if index + 1 < len(parts):
                folder_id = parts[index + 1]
    if not folder_id or not _VALID_ID.match(folder_id):
        raise InvalidLocatorError(f"Invalid Drive folder id or link: {folder_ref!r}")
    return folder_id


def view_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


class DriveFileSource(BaseFileSource):
    """Lists PDFs in a Drive folder and downloads them with a bearer token."""

    origin = DRIVE

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        quota_project_id: str | None = None,
        timeout_seconds: int = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._quota_project_id = quota_project_id
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def list_files(self, container_ref: str, page_size: int) -> list[SourceFile]:
        folder_id = extract_folder_id(container_ref)
        query = f"'{folder_id}' in parents and mimeType='{PDF_MIME_TYPE}' and trashed=false"
        headers = await self._headers()
        files: list[dict[str, Any]] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "q": query,
                "fields": "nextPageToken, files(id, name, mimeType, size)",
                "pageSize": min(MAX_PAGE_SIZE, page_size),
            }
            if page_token:
                params["pageToken"] = page_token
            try:
                response = await self._http.get(FILES_URL, params=params, headers=headers)
            except httpx.HTTPError as exc:
                raise SourceListError(f"Drive list failed: {exc}") from exc
            if response.status_code >= 400:
                raise SourceListError(self._list_error(response))
            try:
                payload = response.json()
            except ValueError as exc:
                raise SourceListError(f"Drive list returned a non-JSON body: {response.text[:200]}") from exc
            if not isinstance(payload, dict):
                raise SourceListError("Drive list returned an unexpected JSON shape")
            page = payload.get("files")
            if isinstance(page, list):
                files.extend(f for f in page if isinstance(f, dict) and f.get("id"))
            page_token = payload.get("nextPageToken")
            if len(files) >= page_size or not page_token:
                break

        return [
            SourceFile(
                source_id=f["id"],
                origin=DRIVE,
                original_locator=view_url(f["id"]),
                display_name=f.get("name"),
                folder_id=folder_id,
                view_url=view_url(f["id"]),
                size_bytes=int(f["size"]) if f.get("size") else None,
            )
            for f in files[:page_size]
        ]

    async def download(self, source_file: SourceFile) -> DownloadedFile:
        url = f"{FILES_URL}/{source_file.source_id}"
        try:
            response = await self._http.get(
                url, params={"alt": "media"}, headers=await self._headers()
            )
        except httpx.HTTPError as exc:
            raise SourceDownloadError(f"Drive download failed: {exc}") from exc
        if response.status_code >= 400:
            raise SourceDownloadError(
                f"Drive download failed: {response.status_code} {response.text}"
            )
        return DownloadedFile(data=response.content, content_type=PDF_MIME_TYPE)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _headers(self) -> dict[str, str]:
        token = await self._token_provider.get_token([DRIVE_READONLY_SCOPE])
        headers = {"Authorization": f"Bearer {token}"}
        project_id = self._quota_project_id or await self._token_provider.get_project_id()
        if project_id:
            headers["X-Goog-User-Project"] = project_id
        return headers

    @staticmethod
    def _list_error(response: httpx.Response) -> str:
        if response.status_code == 403 and _SCOPE_ERROR.search(response.text):
            return (
                "Drive list failed: 403 insufficient scopes. Re-authenticate with the "
                f"{DRIVE_READONLY_SCOPE} scope"
            )
        return f"Drive list failed: {response.status_code} {response.text}"
