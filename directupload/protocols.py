"""
Protocols (Interfaces) for Dependency Inversion.

The orchestrator only talks to these, so the HTTP services can be swapped
for doubles in tests.
"""
from typing import Any, Dict, Mapping, Protocol, runtime_checkable

from .models import SelectedFile, StorageResponse, UploadPolicy


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for application server calls."""

    async def post(self, endpoint: str, data: Dict[str, str]) -> Any:
        """POST a form to the API and return the response."""
        ...


@runtime_checkable
class IPolicyFetcher(Protocol):
    """Interface for obtaining a signed POST policy."""

    async def request_policy(self, filename: str, mime_type: str) -> UploadPolicy:
        """Request an upload policy for the given file name and MIME type."""
        ...


@runtime_checkable
class IStorageUploader(Protocol):
    """Interface for the direct multipart upload to storage."""

    async def upload(
        self,
        fields: Mapping[str, str],
        file: SelectedFile,
        expected_status: int,
    ) -> StorageResponse:
        """Submit the form fields and file content to storage."""
        ...
