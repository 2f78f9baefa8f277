from abc import ABC, abstractmethod
from dataclasses import dataclass

DRIVE = "drive"
ZOHO = "zoho"
DIRECT_URL = "direct-url"

PDF_MIME_TYPE = "application/pdf"
OCTET_STREAM = "application/octet-stream"


@dataclass(frozen=True)
class SourceFile:
    """Reference to one document in an external source."""

    source_id: str
    origin: str
    original_locator: str
    display_name: str | None = None
    folder_id: str | None = None
    view_url: str | None = None
    size_bytes: int | None = None


@dataclass(frozen=True)
class DownloadedFile:
    """Raw bytes of a downloaded document."""

    data: bytes
    content_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def guess_mime_type(locator: str) -> str:
    path = locator.split("?", 1)[0]
    ext = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return PDF_MIME_TYPE if ext == "pdf" else OCTET_STREAM


class BaseFileSource(ABC):
    """Contract for external document sources."""

    origin: str

    @abstractmethod
    async def list_files(self, container_ref: str, page_size: int) -> list[SourceFile]:
        """List up to ``page_size`` files in the container.

        Raises:
            InvalidLocatorError: if ``container_ref`` cannot be parsed.
            SourceListError: if the listing fails.
        """

    @abstractmethod
    async def download(self, source_file: SourceFile) -> DownloadedFile:
        """Fetch the file bytes.

        Raises:
            SourceDownloadError: if the download fails or times out.
        """

    async def aclose(self) -> None:
        return None
