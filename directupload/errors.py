"""
Error taxonomy for direct uploads.

Every error is terminal for the attempt it belongs to and is reported
through the orchestrator's failure hook, never raised out of it.
"""
from typing import Iterable, Optional, Tuple, Union


class UploadError(Exception):
    """Base class for upload attempt failures."""


class TransportError(UploadError):
    """Network, timeout or non-2xx failure while talking to a collaborator."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class MalformedPolicy(UploadError):
    """The signing server returned a policy the upload cannot be built from."""

    def __init__(self, message: str, missing_fields: Iterable[str] = ()):
        super().__init__(message)
        self.missing_fields: Tuple[str, ...] = tuple(missing_fields)


class StorageRejected(UploadError):
    """Storage answered with a status other than the policy's declared one."""

    def __init__(
        self,
        status_code: int,
        expected_status: int,
        code: Optional[str] = None,
        message: Optional[str] = None,
        body: str = "",
    ):
        detail = f"storage responded {status_code}, expected {expected_status}"
        if code:
            detail += f" ({code}: {message or '-'})"
        super().__init__(detail)
        self.status_code = status_code
        self.expected_status = expected_status
        self.code = code
        self.message = message
        self.body = body


FetchError = Union[TransportError, MalformedPolicy]
