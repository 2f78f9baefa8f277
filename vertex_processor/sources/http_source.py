from urllib.parse import urlparse

import httpx

from vertex_processor.sources.base import (
    DIRECT_URL,
    BaseFileSource,
    DownloadedFile,
    SourceFile,
    guess_mime_type,
)
from vertex_processor.sources.exceptions import (
    InvalidLocatorError,
    SourceDownloadError,
    SourceListError,
)


def validate_url(url: str) -> str:
    """Return the trimmed URL when it is absolute http(s).

    Raises:
        InvalidLocatorError: otherwise.
    """
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidLocatorError(f"Invalid file URL: {url!r}")
    return candidate


class HttpFileSource(BaseFileSource):
    """Downloads documents from plain URLs. Containers are not supported."""

    origin = DIRECT_URL

    def __init__(
        self,
        *,
        timeout_seconds: int = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout_seconds, follow_redirects=True
        )

    async def list_files(self, container_ref: str, page_size: int) -> list[SourceFile]:
        raise SourceListError("Direct URLs cannot be listed")

    async def download(self, source_file: SourceFile) -> DownloadedFile:
        return await self.download_url(source_file.original_locator)

    async def download_url(self, url: str) -> DownloadedFile:
        url = validate_url(url)
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as exc:
            raise SourceDownloadError(f"Download failed for {url}: {exc}") from exc
        if response.status_code >= 400:
            raise SourceDownloadError(
                f"Download failed for {url}: status {response.status_code}"
            )
        content_type = response.headers.get("content-type") or guess_mime_type(url)
        return DownloadedFile(data=response.content, content_type=content_type.split(";")[0].strip())

    async def aclose(self) -> None:
        await self._http.aclose()
