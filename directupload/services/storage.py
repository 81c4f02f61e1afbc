"""
Storage Service - Single Responsibility: send the direct upload to storage.

Posts the signed form fields and the file content to the bucket's upload URL
and turns the answer into a StorageResponse or a classified error.
"""
import logging
import xml.etree.ElementTree as ET
from typing import Dict, Mapping, Optional

import httpx

from ..errors import StorageRejected, TransportError
from ..models import SelectedFile, StorageResponse

logger = logging.getLogger(__name__)


def _parse_xml(body: str) -> Dict[str, str]:
    """Flatten a small S3 XML document (PostResponse or Error) into a dict."""
    if not body.strip():
        return {}
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return {}

    values = {}
    for child in root:
        # drop the namespace, S3 sometimes qualifies the tags
        tag = child.tag.rsplit("}", 1)[-1]
        if child.text is not None:
            values[tag] = child.text.strip()
    return values


class StorageUploader:
    """
    Uploads a file to object storage with a signed POST form.

    Implements IStorageUploader protocol.
    """

    def __init__(
        self,
        upload_url: str,
        client: Optional[httpx.AsyncClient] = None,
        file_field: str = "file",
        timeout: float = 60,
    ):
        """
        Initialize storage uploader.

        Args:
            upload_url: Bucket upload URL the form is posted to
            client: Optional shared httpx client (owned by the caller)
            file_field: Form field name of the file part
            timeout: Request timeout in seconds when the client is created here
        """
        self._upload_url = upload_url
        self._client = client
        self._owns_client = client is None
        self._file_field = file_field
        self._timeout = timeout

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *args):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def upload(
        self,
        fields: Mapping[str, str],
        file: SelectedFile,
        expected_status: int,
    ) -> StorageResponse:
        """
        Submit the policy fields followed by the file content.

        Args:
            fields: Ordered form fields built from the policy
            file: File whose content is sent as the last part
            expected_status: Status storage answers with on success

        Returns:
            StorageResponse parsed from the answer

        Raises:
            TransportError: network failure or timeout
            StorageRejected: storage answered with another status
        """
        if not self._client:
            raise RuntimeError("StorageUploader not initialized. Use 'async with' context.")

        logger.debug(f"Uploading {file.name} ({file.size} bytes) to {self._upload_url}")
        try:
            response = await self._client.post(
                self._upload_url,
                data=dict(fields),
                files={self._file_field: (file.name, file.content, file.mime_type)},
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"upload of {file.name} timed out", cause=exc) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"upload of {file.name} failed: {exc}", cause=exc) from exc

        body = response.text
        parsed = _parse_xml(body)

        if response.status_code != expected_status:
            logger.warning(
                f"Storage rejected {file.name}: {response.status_code} "
                f"{parsed.get('Code', '')} {parsed.get('Message', '')}".rstrip()
            )
            raise StorageRejected(
                status_code=response.status_code,
                expected_status=expected_status,
                code=parsed.get("Code"),
                message=parsed.get("Message"),
                body=body,
            )

        return StorageResponse(
            status_code=response.status_code,
            location=parsed.get("Location") or response.headers.get("Location"),
            bucket=parsed.get("Bucket"),
            key=parsed.get("Key"),
            etag=parsed.get("ETag") or response.headers.get("ETag"),
            body=body,
        )
