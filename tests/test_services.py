"""Tests for directupload services."""
from urllib.parse import parse_qs

import httpx
import pytest

from directupload.errors import MalformedPolicy, StorageRejected, TransportError
from directupload.services.api_client import HTTPAPIClient
from directupload.services.policy_fetcher import PolicyFetcher
from directupload.services.storage import StorageUploader

from tests.payloads import POLICY_BODY, STORAGE_CREATED_XML, STORAGE_DENIED_XML


API_URL = "http://app.test"
STORAGE_URL = "https://bucket.s3.amazonaws.com/"


def _api_client(handler) -> HTTPAPIClient:
    client = httpx.AsyncClient(base_url=API_URL, transport=httpx.MockTransport(handler))
    return HTTPAPIClient(API_URL, client=client)


def _storage(handler) -> StorageUploader:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StorageUploader(STORAGE_URL, client=client)


class TestHTTPAPIClient:
    @pytest.mark.asyncio
    async def test_requires_context(self):
        client = HTTPAPIClient(API_URL)
        with pytest.raises(RuntimeError, match="not initialized"):
            await client.post("/api/upload_signatures", data={})

    @pytest.mark.asyncio
    async def test_non_2xx_raises_transport_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": "boom"})

        async with _api_client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.post("/api/upload_signatures", data={})

        assert exc_info.value.status_code == 500
        assert "boom" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_single_attempt_only(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        async with _api_client(handler) as client:
            with pytest.raises(TransportError):
                await client.post("/api/upload_signatures", data={})

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_url_is_transport_error(self):
        def handler(request):
            raise AssertionError("no request expected")

        async with _api_client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.post("/api/\x00upload_signatures", data={})

        assert isinstance(exc_info.value.cause, httpx.InvalidURL)


class TestPolicyFetcher:
    @pytest.mark.asyncio
    async def test_request_policy_sends_form(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json=POLICY_BODY)

        async with _api_client(handler) as client:
            policy = await PolicyFetcher(client).request_policy("cat.png", "image/png")

        assert seen["method"] == "POST"
        assert seen["path"] == "/api/upload_signatures"
        assert seen["form"] == {"filename": ["cat.png"], "mimetype": ["image/png"]}
        assert policy.object_key == "uploads/cat.png"
        assert policy.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_custom_endpoint(self):
        def handler(request):
            assert request.url.path == "/sign"
            return httpx.Response(200, json=POLICY_BODY)

        async with _api_client(handler) as client:
            policy = await PolicyFetcher(client, endpoint="/sign").request_policy("cat.png", "image/png")

        assert policy.signature == POLICY_BODY["signature"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename, mime_type", [("", "image/png"), ("cat.png", "")])
    async def test_rejects_empty_arguments(self, filename, mime_type):
        def handler(request):
            raise AssertionError("no request expected")

        async with _api_client(handler) as client:
            with pytest.raises(ValueError):
                await PolicyFetcher(client).request_policy(filename, mime_type)

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with _api_client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await PolicyFetcher(client).request_policy("cat.png", "image/png")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.cause, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_connection_refused_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _api_client(handler) as client:
            with pytest.raises(TransportError):
                await PolicyFetcher(client).request_policy("cat.png", "image/png")

    @pytest.mark.asyncio
    async def test_forbidden_is_transport_error(self):
        def handler(request):
            return httpx.Response(403, text="nope")

        async with _api_client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await PolicyFetcher(client).request_policy("cat.png", "image/png")

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_signature_is_malformed(self):
        body = {k: v for k, v in POLICY_BODY.items() if k != "signature"}

        def handler(request):
            return httpx.Response(200, json=body)

        async with _api_client(handler) as client:
            with pytest.raises(MalformedPolicy) as exc_info:
                await PolicyFetcher(client).request_policy("cat.png", "image/png")

        assert exc_info.value.missing_fields == ("signature",)

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self):
        def handler(request):
            return httpx.Response(200, text="<html>login</html>")

        async with _api_client(handler) as client:
            with pytest.raises(MalformedPolicy, match="JSON"):
                await PolicyFetcher(client).request_policy("cat.png", "image/png")


class TestStorageUploader:
    @pytest.mark.asyncio
    async def test_requires_context(self, cat_file):
        storage = StorageUploader(STORAGE_URL)
        with pytest.raises(RuntimeError, match="not initialized"):
            await storage.upload({}, cat_file, 201)

    @pytest.mark.asyncio
    async def test_upload_sends_fields_then_file(self, cat_file):
        seen = {}

        def handler(request):
            seen["content_type"] = request.headers["Content-Type"]
            seen["body"] = request.content
            return httpx.Response(201, text=STORAGE_CREATED_XML)

        fields = {
            "key": "uploads/cat.png",
            "AWSAccessKeyId": "AKIAEXAMPLE",
            "acl": "public-read",
            "success_action_status": "201",
            "policy": "cG9saWN5",
            "signature": "c2ln",
            "Content-Type": "image/png",
        }
        async with _storage(handler) as storage:
            response = await storage.upload(fields, cat_file, 201)

        assert seen["content_type"].startswith("multipart/form-data")
        body = seen["body"]
        positions = [body.index(f'name="{name}"'.encode()) for name in fields]
        assert positions == sorted(positions)
        file_position = body.index(b'name="file"; filename="cat.png"')
        assert file_position > positions[-1]
        assert cat_file.content in body

        assert response.status_code == 201
        assert response.bucket == "bucket"
        assert response.key == "uploads/cat.png"
        assert response.location == "https://bucket.s3.amazonaws.com/uploads%2Fcat.png"
        assert response.etag == '"d41d8cd98f00b204e9800998ecf8427e"'

    @pytest.mark.asyncio
    async def test_upload_204_reads_headers(self, cat_file):
        def handler(request):
            return httpx.Response(
                204,
                headers={"Location": "https://bucket/uploads/cat.png", "ETag": '"abc"'},
            )

        async with _storage(handler) as storage:
            response = await storage.upload({"key": "uploads/cat.png"}, cat_file, 204)

        assert response.location == "https://bucket/uploads/cat.png"
        assert response.etag == '"abc"'
        assert response.key is None

    @pytest.mark.asyncio
    async def test_forbidden_is_storage_rejected(self, cat_file):
        def handler(request):
            return httpx.Response(403, text=STORAGE_DENIED_XML)

        async with _storage(handler) as storage:
            with pytest.raises(StorageRejected) as exc_info:
                await storage.upload({"key": "uploads/cat.png"}, cat_file, 201)

        error = exc_info.value
        assert error.status_code == 403
        assert error.expected_status == 201
        assert error.code == "AccessDenied"
        assert error.message == "Invalid according to Policy: Policy expired."

    @pytest.mark.asyncio
    async def test_unexpected_success_status_is_rejected(self, cat_file):
        def handler(request):
            return httpx.Response(200, text="")

        async with _storage(handler) as storage:
            with pytest.raises(StorageRejected) as exc_info:
                await storage.upload({"key": "uploads/cat.png"}, cat_file, 201)

        assert exc_info.value.code is None

    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self, cat_file):
        def handler(request):
            raise httpx.ConnectError("connection reset", request=request)

        async with _storage(handler) as storage:
            with pytest.raises(TransportError):
                await storage.upload({"key": "uploads/cat.png"}, cat_file, 201)

    @pytest.mark.asyncio
    async def test_invalid_upload_url_is_transport_error(self, cat_file):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(201)))

        async with StorageUploader("https://bad host/\x00", client=client) as storage:
            with pytest.raises(TransportError) as exc_info:
                await storage.upload({"key": "uploads/cat.png"}, cat_file, 201)

        assert isinstance(exc_info.value.cause, httpx.InvalidURL)

    @pytest.mark.asyncio
    async def test_closes_only_own_client(self):
        shared = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(201)))

        async with StorageUploader(STORAGE_URL, client=shared):
            pass

        assert shared.is_closed is False
        await shared.aclose()


def test_services_implement_protocols():
    from directupload.protocols import IAPIClient, IPolicyFetcher, IStorageUploader

    api = HTTPAPIClient(API_URL)
    assert isinstance(api, IAPIClient)
    assert isinstance(PolicyFetcher(api), IPolicyFetcher)
    assert isinstance(StorageUploader(STORAGE_URL), IStorageUploader)
