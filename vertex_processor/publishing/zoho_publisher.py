"""Posts extracted invoice fields to a Zoho Creator form published with a private link."""

import re
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.extraction.reconciler import FieldReconciler
from vertex_processor.logging.logger import Log
from vertex_processor.publishing.exceptions import InvalidFileIdError, PublishError
from vertex_processor.sources.zoho import USER_AGENT, extract_private_link

DEFAULT_CREATOR_BASE = "https://www.zohoapis.in"
_CREATOR_HOST = re.compile(r"creatorapp\.(zohopublic|zoho)\.", re.IGNORECASE)
_FILE_RECORD_PATH = re.compile(r"/file/[^/]+/[^/]+/[^/]+/(\d+)/")


def extract_zoho_file_id(url: str | None) -> int:
    """Record id of a Zoho Creator public file download URL.

    The path looks like ``/file/{owner}/{app}/{report}/{recordId}/{field}/download/{link}``.
    """
    parsed = urlparse(url or "")
    match = _FILE_RECORD_PATH.search(parsed.path) if _CREATOR_HOST.search(parsed.hostname or "") else None
    if match is None:
        raise InvalidFileIdError(
            "Unable to extract File_ID from fileUrl. Ensure it is a Zoho public file download URL."
        )
    return int(match.group(1))


def resolve_creator_base(explicit: str, report_url: str) -> str:
    """Explicit base first, then the report URL's host, then the India data centre."""
    if explicit:
        return explicit.rstrip("/")
    parsed = urlparse(report_url or "")
    if parsed.scheme and parsed.hostname:
        return f"{parsed.scheme}://{parsed.hostname}"
    return DEFAULT_CREATOR_BASE


class ZohoPublisher:
    """Adds one record per extraction to a Zoho Creator form."""

    def __init__(
        self,
        *,
        schema: FieldSchema,
        base_url: str,
        app_owner: str,
        app_link_name: str,
        form_link_name: str,
        private_link: str,
        include_gcs_uri: bool = False,
        timeout_seconds: int = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not private_link:
            raise PublishError("Zoho publishing needs a privatelink for the target form")
        self._schema = schema
        self._reconciler = FieldReconciler(schema)
        self._form_url = (
            f"{base_url.rstrip('/')}/creator/v2.1/publish/{app_owner}/{app_link_name}"
            f"/form/{quote(form_link_name, safe='')}?privatelink={quote(private_link, safe='')}"
        )
        self._include_gcs_uri = include_gcs_uri
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def form_url(self) -> str:
        return self._form_url

    def build_payload(
        self, extracted: dict[str, Any] | None, file_id: int, gcs_uri: str | None = None
    ) -> dict[str, Any]:
        """Nineteen values, nineteen scores under their published names, and File_ID."""
        payload = self._reconciler.reconcile(extracted).publish_payload(self._schema)
        payload["File_ID"] = file_id
        if self._include_gcs_uri:
            payload["gcs_uri"] = gcs_uri
        return payload

    async def publish(
        self, extracted: dict[str, Any] | None, file_id: int, gcs_uri: str | None = None
    ) -> Any:
        """Post one record and return Zoho's response body."""
        payload = self.build_payload(extracted, file_id, gcs_uri)
        try:
            response = await self._http.post(
                self._form_url,
                json={"data": payload},
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise PublishError(f"Zoho publish failed: {exc}") from exc
        body = self._body(response)
        if response.status_code >= 400:
            raise PublishError(
                f"Zoho publish failed: status {response.status_code} {response.text[:500]}",
                status_code=response.status_code,
                body=body,
            )
        Log.info("Published extraction to Zoho", file_id=file_id, status=response.status_code)
        return body

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def _body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text


def private_link_for(explicit: str, fallback: str, report_url: str) -> str:
    """Form privatelink: explicit setting, then the report link, then the report URL's."""
    return explicit or fallback or extract_private_link(report_url) or ""
