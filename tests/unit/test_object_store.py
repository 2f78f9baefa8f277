import re
from unittest.mock import MagicMock

import google.api_core.exceptions
import pytest

from vertex_processor.storage.exceptions import InvalidObjectUriError, ObjectStoreError
from vertex_processor.storage.object_store import (
    GcsObjectStore,
    clamp_signed_url_ttl,
    generate_destination,
    parse_gs_uri,
)


class TestHelpers:
    def test_parse_gs_uri(self) -> None:
        assert parse_gs_uri("gs://bucket/uploads/a/b.pdf") == ("bucket", "uploads/a/b.pdf")

    @pytest.mark.parametrize("uri", ["", "gs://bucket", "gs://bucket/", "https://x/y", "gs:///obj"])
    def test_parse_invalid(self, uri: str) -> None:
        with pytest.raises(InvalidObjectUriError):
            parse_gs_uri(uri)

    def test_clamp_ttl(self) -> None:
        assert clamp_signed_url_ttl(5) == 60
        assert clamp_signed_url_ttl(600) == 600
        assert clamp_signed_url_ttl(10**9) == 604800

    def test_destination_format(self) -> None:
        path = generate_destination("prasoon", "rec1", "pdf", now_ms=1700000000000, suffix="a1b2c3")
        assert path == "uploads/prasoon/rec1-1700000000000-a1b2c3.pdf"

    def test_destination_without_record(self) -> None:
        path = generate_destination("direct", None, "png", now_ms=1, suffix="zzzzzz")
        assert path == "uploads/direct/doc-1-zzzzzz.png"

    def test_destination_random_suffix(self) -> None:
        path = generate_destination("p", "r", "pdf", now_ms=1)
        assert re.fullmatch(r"uploads/p/r-1-[0-9a-z]{6}\.pdf", path)


class TestGcsObjectStore:
    async def test_upload(self) -> None:
        client = MagicMock()
        blob = client.bucket.return_value.blob.return_value

        stored = await GcsObjectStore(client=client).upload("bkt", "uploads/x.pdf", b"abc", "application/pdf")

        client.bucket.assert_called_once_with("bkt")
        client.bucket.return_value.blob.assert_called_once_with("uploads/x.pdf")
        blob.upload_from_string.assert_called_once_with(b"abc", content_type="application/pdf")
        assert stored.uri == "gs://bkt/uploads/x.pdf"
        assert stored.size_bytes == 3

    async def test_upload_failure(self) -> None:
        client = MagicMock()
        client.bucket.return_value.blob.return_value.upload_from_string.side_effect = (
            google.api_core.exceptions.Forbidden("denied")
        )
        with pytest.raises(ObjectStoreError, match="Upload to gs://bkt/p failed"):
            await GcsObjectStore(client=client).upload("bkt", "p", b"", "application/pdf")

    async def test_signed_url(self) -> None:
        client = MagicMock()
        blob = client.bucket.return_value.blob.return_value
        blob.generate_signed_url.return_value = "https://signed"

        signed = await GcsObjectStore(client=client).signed_url("gs://bkt/a/b.pdf", 30)

        assert signed.url == "https://signed"
        kwargs = blob.generate_signed_url.call_args.kwargs
        assert kwargs["version"] == "v4"
        assert kwargs["method"] == "GET"
        assert kwargs["expiration"].total_seconds() == 60

    async def test_signing_without_key(self) -> None:
        client = MagicMock()
        client.bucket.return_value.blob.return_value.generate_signed_url.side_effect = AttributeError(
            "you need a private key to sign credentials"
        )
        with pytest.raises(ObjectStoreError, match="Signing"):
            await GcsObjectStore(client=client).signed_url("gs://bkt/a", 600)

    async def test_signed_url_invalid_uri(self) -> None:
        with pytest.raises(InvalidObjectUriError):
            await GcsObjectStore(client=MagicMock()).signed_url("bkt/a", 600)
