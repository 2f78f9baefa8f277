"""Zoho Creator published-report listing and file download URLs."""

from typing import Any
from urllib.parse import parse_qs, quote, urlparse

import httpx

from vertex_processor.sources.base import ZOHO, BaseFileSource, DownloadedFile, SourceFile, guess_mime_type
from vertex_processor.sources.exceptions import (
    InvalidLocatorError,
    SourceDownloadError,
    SourceListError,
)

DOWNLOAD_BASE_URL = "https://creatorapp.zohopublic.in/file"
USER_AGENT = "vertex-processor/1.0"


def extract_private_link(url: str | None) -> str | None:
    """Return the ``privatelink`` query parameter of a report URL, if any."""
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get("privatelink")
    return values[0] if values else None


def parse_zoho_file_path(value: object) -> str | None:
    """Return the ``filepath`` parameter of a file field value, prefixed with ``/``.

    Field values look like ``/api/v2.1/.../upload_invoice/download?filepath=x.pdf``.
    """
    if not isinstance(value, str) or not value:
        return None
    query = value.split("?", 1)[1] if "?" in value else value
    values = parse_qs(query).get("filepath")
    if not values or not values[0]:
        return None
    path = values[0]
    return path if path.startswith("/") else f"/{path}"


class ZohoFileSource(BaseFileSource):
    """Reads file records from a Zoho Creator report published with a private link."""

    origin = ZOHO

    def __init__(
        self,
        *,
        app_owner: str,
        app_link_name: str,
        report_name: str,
        file_field: str,
        default_private_link: str | None = None,
        timeout_seconds: int = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._app_owner = app_owner
        self._app_link_name = app_link_name
        self._report_name = report_name
        self._file_field = file_field
        self._default_private_link = default_private_link
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout_seconds, follow_redirects=True
        )

    def build_download_url(self, record_id: str, file_path: str, private_link: str) -> str:
        link = "/".join(
            [
                DOWNLOAD_BASE_URL,
                self._app_owner,
                self._app_link_name,
                self._report_name,
                record_id,
                self._file_field,
                "download",
                private_link,
            ]
        )
        return f"{link}?filepath={quote(file_path, safe='')}"

    async def fetch_records(self, report_url: str, count: int) -> list[dict[str, Any]]:
        """Return up to ``count`` raw records from the report."""
        try:
            response = await self._http.get(
                report_url,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise SourceListError(f"Zoho report fetch failed: status unknown {exc}") from exc
        if response.status_code >= 400:
            raise SourceListError(
                f"Zoho report fetch failed: status {response.status_code} {response.text[:500]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceListError(f"Zoho report returned a non-JSON body: {response.text[:200]}") from exc
        if not isinstance(payload, dict):
            raise SourceListError("Zoho report returned an unexpected JSON shape")
        data = payload.get("data") or []
        if not isinstance(data, list):
            return []
        return [record for record in data if isinstance(record, dict)][:count]

    async def list_files(self, container_ref: str, page_size: int) -> list[SourceFile]:
        """List records whose file field carries a file path.

        Records without a usable path are skipped.
        """
        report_url = (container_ref or "").strip()
        if not report_url:
            raise InvalidLocatorError("Missing Zoho report URL")
        private_link = extract_private_link(report_url) or self._default_private_link
        if not private_link:
            raise InvalidLocatorError(
                "Missing Zoho privatelink: pass a report URL with ?privatelink=... "
                "or configure a default"
            )
        records = await self.fetch_records(report_url, max(page_size, 200))
        files: list[SourceFile] = []
        for index, record in enumerate(records, start=1):
            file_path = parse_zoho_file_path(record.get(self._file_field))
            if not file_path:
                continue
            record_id = str(record.get("ID") or record.get("id") or index)
            url = self.build_download_url(record_id, file_path, private_link)
            files.append(
                SourceFile(
                    source_id=record_id,
                    origin=ZOHO,
                    original_locator=url,
                    display_name=file_path.rsplit("/", 1)[-1],
                    folder_id=self._report_name,
                    view_url=url,
                )
            )
            if len(files) >= page_size:
                break
        return files

    async def download(self, source_file: SourceFile) -> DownloadedFile:
        url = source_file.original_locator
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as exc:
            raise SourceDownloadError(f"Zoho download failed: {exc}") from exc
        if response.status_code >= 400:
            raise SourceDownloadError(f"Zoho download failed: status {response.status_code}")
        content_type = response.headers.get("content-type") or guess_mime_type(url)
        return DownloadedFile(data=response.content, content_type=content_type.split(";")[0].strip())

    async def aclose(self) -> None:
        await self._http.aclose()
