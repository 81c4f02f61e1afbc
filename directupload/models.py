"""
Models for directupload.

Immutable dataclasses for the selected file, the signed policy and the
storage answer; a mutable UploadAttempt tracks one run of the state machine.
"""
import mimetypes
import time
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Mapping

from .errors import MalformedPolicy, UploadError


DEFAULT_MIME_TYPE = "application/octet-stream"


class AttemptStatus(Enum):
    """Upload attempt state."""
    IDLE = "idle"
    SIGNING = "signing"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AttemptStatus.SUCCEEDED, AttemptStatus.FAILED)


@dataclass(frozen=True)
class SelectedFile:
    """The one file chosen for an upload attempt."""
    name: str
    mime_type: str
    content: bytes = field(repr=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("file name must not be empty")
        if not self.mime_type:
            raise ValueError("MIME type must not be empty")

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "SelectedFile":
        """Read a local file, guessing its MIME type from the extension."""
        path = Path(path)
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            content=path.read_bytes(),
        )


@dataclass(frozen=True)
class UploadPolicy:
    """Signed POST policy issued by the application server for one file."""
    object_key: str
    access_key_id: str
    acl: str
    success_action_status: str
    policy_document: str = field(repr=False)
    signature: str = field(repr=False)
    content_type: str

    # attribute -> field name used by the signing endpoint and the storage form
    WIRE_NAMES = {
        "object_key": "key",
        "access_key_id": "AWSAccessKeyId",
        "acl": "acl",
        "success_action_status": "success_action_status",
        "policy_document": "policy",
        "signature": "signature",
        "content_type": "Content-Type",
    }

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> "UploadPolicy":
        """
        Build a policy from the signing endpoint's JSON body.

        Raises:
            MalformedPolicy: body is not an object or a field is missing/empty
        """
        if not isinstance(data, Mapping):
            raise MalformedPolicy(
                f"policy response must be a JSON object, got {type(data).__name__}"
            )

        values: Dict[str, str] = {}
        missing = []
        for attr in (f.name for f in fields(cls)):
            wire_name = cls.WIRE_NAMES[attr]
            value = data.get(wire_name)
            if value is None or value == "":
                missing.append(wire_name)
                continue
            values[attr] = value if isinstance(value, str) else str(value)

        if missing:
            raise MalformedPolicy(
                f"policy response is missing fields: {', '.join(missing)}",
                missing_fields=missing,
            )
        return cls(**values)


@dataclass(frozen=True)
class StorageResponse:
    """What storage returned for an accepted upload."""
    status_code: int
    location: Optional[str] = None
    bucket: Optional[str] = None
    key: Optional[str] = None
    etag: Optional[str] = None
    body: str = field(default="", repr=False)


@dataclass
class UploadAttempt:
    """One file selection driven through the orchestrator's state machine."""
    attempt_id: int
    file: SelectedFile
    status: AttemptStatus = AttemptStatus.IDLE
    policy: Optional[UploadPolicy] = None
    expected_status: Optional[int] = None
    error: Optional[UploadError] = None
    response: Optional[StorageResponse] = None
    superseded: bool = False
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.status == AttemptStatus.SUCCEEDED

    @property
    def duration(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for direct uploads."""
    api_url: str
    storage_url: str
    signature_endpoint: str = "/api/upload_signatures"
    file_field: str = "file"
    timeout: float = 60.0
