"""
directupload - client-side direct uploads to object storage.

The application server only signs a POST policy for a file name and MIME
type; the file bytes go straight from the client to the bucket.

Usage:
    from directupload import UploadOrchestrator, UploadConfig, SelectedFile

    config = UploadConfig(
        api_url="https://app.example.com",
        storage_url="https://my-bucket.s3.amazonaws.com",
    )
    async with UploadOrchestrator(config) as uploader:
        uploader.on_attempt_started(lambda file: print(f"Signing {file.name}"))
        uploader.on_upload_begin(lambda attempt: print("Uploading"))
        uploader.on_success(lambda attempt, response: print(response.location))
        uploader.on_failure(lambda attempt, error: print(f"Failed: {error}"))

        attempt = await uploader.select(SelectedFile.from_path("cat.png"))
"""
from .orchestrator import UploadOrchestrator
from .models import (
    AttemptStatus,
    SelectedFile,
    StorageResponse,
    UploadAttempt,
    UploadConfig,
    UploadPolicy,
)
from .errors import (
    FetchError,
    MalformedPolicy,
    StorageRejected,
    TransportError,
    UploadError,
)
from .services import HTTPAPIClient, PolicyFetcher, StorageUploader

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    # Models
    "AttemptStatus",
    "SelectedFile",
    "StorageResponse",
    "UploadAttempt",
    "UploadConfig",
    "UploadPolicy",
    # Errors
    "FetchError",
    "MalformedPolicy",
    "StorageRejected",
    "TransportError",
    "UploadError",
    # Services
    "HTTPAPIClient",
    "PolicyFetcher",
    "StorageUploader",
]
