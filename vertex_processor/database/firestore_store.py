"""Firestore document store over the REST API."""

import math
from typing import Any

import httpx

from vertex_processor.auth.token_provider import DATASTORE_SCOPE, TokenProvider
from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.exceptions import DocumentStoreError, StoreUnavailableError
from vertex_processor.database.models import StoredDocument

DEFAULT_DATABASE = "(default)"


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        if not math.isfinite(value):
            return {"nullValue": None}
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    return {"stringValue": str(value)}


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore typed value; unknown kinds decode to None."""
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "timestampValue" in value:
        return value["timestampValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    return None


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


class FirestoreRestStore(BaseDocumentStore):
    """Reads and writes one Firestore database through the v1 REST API."""

    def __init__(
        self,
        *,
        project_id: str,
        token_provider: TokenProvider,
        database_id: str = DEFAULT_DATABASE,
        timeout_seconds: int = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._project_id = project_id
        self._database_id = database_id
        self._token_provider = token_provider
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def database_id(self) -> str:
        return self._database_id

    async def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        url = f"{await self._documents_root()}/{collection}/{document_id}"
        response = await self._request("GET", url)
        if response.status_code == 404:
            message = _error_message(response)
            if _is_missing_database(message):
                raise StoreUnavailableError(message)
            return None
        self._raise_for_status(response)
        return decode_fields(response.json().get("fields", {}))

    async def list(self, collection: str, page_size: int = 300) -> list[StoredDocument]:
        url = f"{await self._documents_root()}/{collection}"
        documents: list[StoredDocument] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {"pageSize": page_size}
            if page_token:
                params["pageToken"] = page_token
            response = await self._request("GET", url, params=params)
            if response.status_code == 404:
                raise StoreUnavailableError(_error_message(response))
            self._raise_for_status(response)
            payload = response.json()
            for doc in payload.get("documents", []):
                documents.append(
                    StoredDocument(
                        id=doc["name"].rsplit("/", 1)[-1],
                        data=decode_fields(doc.get("fields", {})),
                    )
                )
            page_token = payload.get("nextPageToken")
            if not page_token:
                return documents

    async def upsert(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        root = await self._documents_root()
        name = root.split("/v1/", 1)[1] + f"/{collection}/{document_id}"
        body = {"writes": [{"update": {"name": name, "fields": encode_fields(data)}}]}
        response = await self._request("POST", f"{root}:commit", json=body)
        if response.status_code == 404:
            raise StoreUnavailableError(_error_message(response))
        self._raise_for_status(response)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _documents_root(self) -> str:
        project_id = self._project_id or await self._token_provider.get_project_id()
        if not project_id:
            raise DocumentStoreError("GCP project id is not configured")
        return (
            f"https://firestore.googleapis.com/v1/projects/{project_id}"
            f"/databases/{self._database_id}/documents"
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        token = await self._token_provider.get_token([DATASTORE_SCOPE])
        try:
            return await self._http.request(
                method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        except httpx.HTTPError as exc:
            raise DocumentStoreError(f"Firestore network error: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise DocumentStoreError(_error_message(response))


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"Firestore request failed with status {response.status_code}"


def _is_missing_database(message: str) -> bool:
    lowered = message.lower()
    return "database" in lowered and ("not exist" in lowered or "not found" in lowered)
