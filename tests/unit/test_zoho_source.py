import httpx
import pytest

from vertex_processor.sources.base import SourceFile
from vertex_processor.sources.exceptions import InvalidLocatorError, SourceDownloadError, SourceListError
from vertex_processor.sources.zoho import ZohoFileSource, extract_private_link, parse_zoho_file_path

_REPORT_URL = "https://creatorapp.zohopublic.in/api/v2/owner/app/report/Files?privatelink=LINK123"


def _make_source(handler, default_private_link: str | None = None) -> ZohoFileSource:
    return ZohoFileSource(
        app_owner="owner",
        app_link_name="app",
        report_name="Files",
        file_field="upload_invoice",
        default_private_link=default_private_link,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _record(record_id: str, file_path: str | None) -> dict:
    value = f"/api/v2.1/owner/app/report/Files/{record_id}/upload_invoice/download?filepath={file_path}"
    return {"ID": record_id, "upload_invoice": value if file_path else ""}


class TestHelpers:
    def test_extract_private_link(self) -> None:
        assert extract_private_link(_REPORT_URL) == "LINK123"
        assert extract_private_link("https://x/report") is None
        assert extract_private_link(None) is None

    def test_parse_file_path(self) -> None:
        assert parse_zoho_file_path("/api/x/download?filepath=1700_inv.pdf") == "/1700_inv.pdf"
        assert parse_zoho_file_path("filepath=/already/slashed.pdf") == "/already/slashed.pdf"

    @pytest.mark.parametrize("value", [None, "", 12, "/api/x/download?other=1", "/api/x?filepath="])
    def test_parse_file_path_missing(self, value: object) -> None:
        assert parse_zoho_file_path(value) is None

    def test_build_download_url_encodes_path(self) -> None:
        source = _make_source(lambda r: httpx.Response(200))
        url = source.build_download_url("42", "/inv 1.pdf", "LINK")
        assert url == (
            "https://creatorapp.zohopublic.in/file/owner/app/Files/42/upload_invoice/download/LINK"
            "?filepath=%2Finv%201.pdf"
        )


class TestListFiles:
    async def test_lists_records_with_files(self) -> None:
        data = {"data": [_record("1", "a.pdf"), _record("2", None), _record("3", "c.pdf")]}
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=data)

        files = await _make_source(handler).list_files(_REPORT_URL, 10)

        assert [f.source_id for f in files] == ["1", "3"]
        assert files[0].origin == "zoho"
        assert files[0].folder_id == "Files"
        assert files[0].display_name == "a.pdf"
        assert files[0].original_locator.endswith("/1/upload_invoice/download/LINK123?filepath=%2Fa.pdf")
        assert files[0].view_url == files[0].original_locator
        assert seen[0].headers["Accept"] == "application/json"

    async def test_respects_count(self) -> None:
        data = {"data": [_record(str(i), f"{i}.pdf") for i in range(5)]}
        files = await _make_source(lambda r: httpx.Response(200, json=data)).list_files(_REPORT_URL, 2)
        assert len(files) == 2

    async def test_default_private_link(self) -> None:
        data = {"data": [_record("1", "a.pdf")]}
        source = _make_source(lambda r: httpx.Response(200, json=data), default_private_link="DEF")
        files = await source.list_files("https://creatorapp.zohopublic.in/report/Files", 5)
        assert "/download/DEF?" in files[0].original_locator

    async def test_missing_private_link(self) -> None:
        source = _make_source(lambda r: httpx.Response(200, json={"data": []}))
        with pytest.raises(InvalidLocatorError, match="privatelink"):
            await source.list_files("https://creatorapp.zohopublic.in/report/Files", 5)

    async def test_missing_report_url(self) -> None:
        with pytest.raises(InvalidLocatorError):
            await _make_source(lambda r: httpx.Response(200)).list_files("  ", 5)

    async def test_report_error(self) -> None:
        source = _make_source(lambda r: httpx.Response(401, text="x" * 900))
        with pytest.raises(SourceListError, match="Zoho report fetch failed: status 401") as exc_info:
            await source.list_files(_REPORT_URL, 5)
        assert len(str(exc_info.value)) < 600

    async def test_non_json_body(self) -> None:
        source = _make_source(lambda r: httpx.Response(200, text="<html>maintenance</html>"))
        with pytest.raises(SourceListError, match="non-JSON body"):
            await source.list_files(_REPORT_URL, 5)

    async def test_top_level_list_body(self) -> None:
        source = _make_source(lambda r: httpx.Response(200, json=[_record("1", "a.pdf")]))
        with pytest.raises(SourceListError, match="unexpected JSON shape"):
            await source.list_files(_REPORT_URL, 5)

    async def test_skips_non_object_records(self) -> None:
        body = {"data": ["junk", None, _record("7", "inv.pdf")]}
        files = await _make_source(lambda r: httpx.Response(200, json=body)).list_files(_REPORT_URL, 5)
        assert [f.source_id for f in files] == ["7"]


class TestDownload:
    async def test_download_strips_content_type_params(self) -> None:
        source = _make_source(
            lambda r: httpx.Response(
                200, content=b"%PDF", headers={"content-type": "application/pdf; charset=binary"}
            )
        )
        source_file = SourceFile(source_id="1", origin="zoho", original_locator="https://z/file?filepath=a.pdf")
        downloaded = await source.download(source_file)
        assert downloaded.content_type == "application/pdf"

    async def test_download_error(self) -> None:
        source = _make_source(lambda r: httpx.Response(403))
        source_file = SourceFile(source_id="1", origin="zoho", original_locator="https://z/f")
        with pytest.raises(SourceDownloadError, match="status 403"):
            await source.download(source_file)
