import json

import httpx
import pytest

from vertex_processor.extraction.field_schema import FieldSchema
from vertex_processor.publishing.exceptions import InvalidFileIdError, PublishError
from vertex_processor.publishing.zoho_publisher import (
    ZohoPublisher,
    extract_zoho_file_id,
    private_link_for,
    resolve_creator_base,
)

_FILE_URL = "https://creatorapp.zohopublic.in/file/owner/app/Files/4200017/upload_invoice/download/LINK"


def _make_publisher(handler, include_gcs_uri: bool = False) -> ZohoPublisher:
    return ZohoPublisher(
        schema=FieldSchema(),
        base_url="https://www.zohoapis.in/",
        app_owner="owner",
        app_link_name="app",
        form_link_name="Google AI Scan",
        private_link="priv/link",
        include_gcs_uri=include_gcs_uri,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestExtractFileId:
    def test_public_download_url(self) -> None:
        assert extract_zoho_file_id(_FILE_URL + "?filepath=/a.pdf") == 4200017

    def test_internal_host(self) -> None:
        url = "https://creatorapp.zoho.com/file/o/a/R/55/f/download"
        assert extract_zoho_file_id(url) == 55

    @pytest.mark.parametrize(
        "url",
        [
            None,
            "",
            "https://example.com/file/owner/app/Files/4200017/upload_invoice/download",
            "https://creatorapp.zohopublic.in/file/owner/app/Files/not-a-number/upload_invoice",
            "gs://bkt/uploads/a.pdf",
        ],
    )
    def test_rejects_other_urls(self, url: str | None) -> None:
        with pytest.raises(InvalidFileIdError, match="Unable to extract File_ID"):
            extract_zoho_file_id(url)


class TestConfiguration:
    def test_base_prefers_explicit(self) -> None:
        assert resolve_creator_base("https://creator.zoho.eu/", "https://x.in/r") == "https://creator.zoho.eu"

    def test_base_from_report_url(self) -> None:
        report = "https://creatorapp.zohopublic.in/api/v2/o/a/report/Files?privatelink=L"
        assert resolve_creator_base("", report) == "https://creatorapp.zohopublic.in"

    def test_base_default(self) -> None:
        assert resolve_creator_base("", "") == "https://www.zohoapis.in"

    def test_private_link_order(self) -> None:
        assert private_link_for("form", "report", "https://x/r?privatelink=url") == "form"
        assert private_link_for("", "report", "https://x/r?privatelink=url") == "report"
        assert private_link_for("", "", "https://x/r?privatelink=url") == "url"
        assert private_link_for("", "", "") == ""

    def test_private_link_required(self) -> None:
        with pytest.raises(PublishError, match="privatelink"):
            ZohoPublisher(
                schema=FieldSchema(),
                base_url="https://www.zohoapis.in",
                app_owner="o",
                app_link_name="a",
                form_link_name="f",
                private_link="",
            )

    def test_form_url_is_encoded(self) -> None:
        publisher = _make_publisher(lambda r: httpx.Response(200))
        assert publisher.form_url == (
            "https://www.zohoapis.in/creator/v2.1/publish/owner/app/form/Google%20AI%20Scan"
            "?privatelink=priv%2Flink"
        )


class TestBuildPayload:
    def test_published_names_and_file_id(self) -> None:
        extracted = {
            "fields": {"invoice_no": "A1", "Seller_GSTIN": "27ABCDE1234F1Z5"},
            "fields_confidence": {"invoice_no": 0.9, "Seller_GSTIN": 0.8},
        }
        payload = _make_publisher(lambda r: httpx.Response(200)).build_payload(extracted, 7, "gs://b/x")

        assert payload["Invoice_Number"] == "A1"
        assert payload["Invoice_Number_Confidence"] == 0.9
        assert payload["Seller_GST_Confidence"] == 0.8
        assert payload["IRN_Details"] is None
        assert payload["File_ID"] == 7
        assert "gcs_uri" not in payload
        assert len(payload) == 2 * len(FieldSchema()) + 1

    def test_gcs_uri_when_enabled(self) -> None:
        publisher = _make_publisher(lambda r: httpx.Response(200), include_gcs_uri=True)
        assert publisher.build_payload({}, 7, "gs://b/x")["gcs_uri"] == "gs://b/x"

    def test_unparsed_extraction_publishes_nulls(self) -> None:
        payload = _make_publisher(lambda r: httpx.Response(200)).build_payload(None, 7)
        assert payload["Invoice_Number"] is None
        assert payload["File_ID"] == 7


class TestPublish:
    async def test_posts_data_envelope(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"code": 3000, "data": {"ID": "99"}})

        body = await _make_publisher(handler).publish({"Invoice_Number": "A1"}, 42)

        assert body == {"code": 3000, "data": {"ID": "99"}}
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/creator/v2.1/publish/owner/app/form/Google AI Scan"
        assert request.url.params["privatelink"] == "priv/link"
        sent = json.loads(request.content)
        assert sent["data"]["Invoice_Number"] == "A1"
        assert sent["data"]["File_ID"] == 42

    async def test_rejection_carries_zoho_body(self) -> None:
        publisher = _make_publisher(lambda r: httpx.Response(400, json={"code": 3001, "error": "bad"}))
        with pytest.raises(PublishError, match="status 400") as exc_info:
            await publisher.publish({}, 42)
        assert exc_info.value.status_code == 400
        assert exc_info.value.body == {"code": 3001, "error": "bad"}

    async def test_non_json_success_body(self) -> None:
        publisher = _make_publisher(lambda r: httpx.Response(200, text="ok"))
        assert await publisher.publish({}, 42) == "ok"

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PublishError, match="refused"):
            await _make_publisher(handler).publish({}, 42)

    async def test_close(self) -> None:
        publisher = _make_publisher(lambda r: httpx.Response(200))
        await publisher.aclose()
