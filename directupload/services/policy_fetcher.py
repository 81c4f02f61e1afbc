"""
Policy Fetcher - Single Responsibility: obtain upload authorization.

Asks the application server to sign a POST policy for one file name and
MIME type.
"""
import logging

from ..errors import MalformedPolicy, TransportError
from ..models import UploadPolicy
from ..protocols import IAPIClient

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_ENDPOINT = "/api/upload_signatures"


class PolicyFetcher:
    """
    Requests signed POST policies from the application server.

    Implements IPolicyFetcher protocol.
    """

    def __init__(self, api_client: IAPIClient, endpoint: str = DEFAULT_SIGNATURE_ENDPOINT):
        """
        Initialize fetcher.

        Args:
            api_client: HTTP client for API calls
            endpoint: Path of the signing endpoint
        """
        self._api = api_client
        self._endpoint = endpoint

    async def request_policy(self, filename: str, mime_type: str) -> UploadPolicy:
        """
        Request a policy for a file.

        Args:
            filename: Name of the file to upload
            mime_type: MIME type the object will be stored with

        Returns:
            Fully populated UploadPolicy

        Raises:
            ValueError: filename or mime_type is empty
            TransportError: request failed or server answered non-2xx
            MalformedPolicy: response body lacks required policy fields
        """
        if not filename:
            raise ValueError("filename must not be empty")
        if not mime_type:
            raise ValueError("mime_type must not be empty")

        logger.debug(f"Requesting upload policy for {filename} ({mime_type})")
        try:
            response = await self._api.post(
                self._endpoint,
                data={"filename": filename, "mimetype": mime_type},
            )
        except TransportError as exc:
            logger.warning(f"Policy request for {filename} failed: {exc}")
            raise

        try:
            body = response.json()
        except ValueError as exc:
            logger.warning(f"Policy response for {filename} is not JSON")
            raise MalformedPolicy(f"policy response is not valid JSON: {exc}") from exc

        try:
            policy = UploadPolicy.from_response(body)
        except MalformedPolicy as exc:
            logger.warning(f"Policy response for {filename} rejected: {exc}")
            raise

        logger.debug(f"Received policy for key {policy.object_key}")
        return policy
