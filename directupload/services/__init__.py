"""Services for directupload module."""
from .api_client import HTTPAPIClient
from .policy_fetcher import PolicyFetcher
from .storage import StorageUploader

__all__ = [
    "HTTPAPIClient",
    "PolicyFetcher",
    "StorageUploader",
]
