"""Core orchestrator - drives one direct upload from selection to outcome."""
import asyncio
import logging
import time
from typing import Any, Callable, Optional

from ..errors import MalformedPolicy, UploadError
from ..models import AttemptStatus, SelectedFile, StorageResponse, UploadAttempt, UploadConfig
from ..protocols import IPolicyFetcher, IStorageUploader
from ..services.api_client import HTTPAPIClient
from ..services.policy_fetcher import PolicyFetcher
from ..services.storage import StorageUploader
from ..utils.events import ATTEMPT_STARTED, FAILURE, SUCCESS, UPLOAD_BEGIN, EventEmitter
from .submission import build_submission_fields, parse_success_status

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Orchestrates direct uploads using injected services.

    Each file selection becomes an UploadAttempt that moves through
    Idle -> Signing -> Uploading -> Succeeded/Failed. Only the most recent
    attempt is current: an older attempt still runs to its terminal state,
    but its notifications are dropped.

    Usage:
        config = UploadConfig(api_url, storage_url)
        async with UploadOrchestrator(config) as uploader:
            uploader.on_success(lambda attempt, response: print(response.location))
            uploader.on_failure(lambda attempt, error: print(error))
            attempt = await uploader.select(SelectedFile.from_path(path))

        # With injected collaborators
        uploader = UploadOrchestrator(policy_fetcher=fetcher, storage=storage)
    """

    def __init__(
        self,
        config: Optional[UploadConfig] = None,
        policy_fetcher: Optional[IPolicyFetcher] = None,
        storage: Optional[IStorageUploader] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            config: Upload configuration, used to build missing services
            policy_fetcher: Pre-built policy fetcher
            storage: Pre-built storage uploader
        """
        self._config = config
        self._fetcher = policy_fetcher
        self._storage = storage

        # Services created here are closed in __aexit__
        self._api_client: Optional[HTTPAPIClient] = None
        self._owned_storage: Optional[StorageUploader] = None

        self._events = EventEmitter()
        self._current: Optional[UploadAttempt] = None
        self._last_id = 0

    async def __aenter__(self):
        """Build and open services that were not injected."""
        if self._fetcher is None or self._storage is None:
            if self._config is None:
                raise ValueError("Either config or both policy_fetcher and storage must be provided")

        if self._fetcher is None:
            self._api_client = HTTPAPIClient(self._config.api_url, timeout=self._config.timeout)
            await self._api_client.__aenter__()
            self._fetcher = PolicyFetcher(self._api_client, self._config.signature_endpoint)

        if self._storage is None:
            self._owned_storage = StorageUploader(
                self._config.storage_url,
                file_field=self._config.file_field,
                timeout=self._config.timeout,
            )
            await self._owned_storage.__aenter__()
            self._storage = self._owned_storage

        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._owned_storage:
            await self._owned_storage.__aexit__(*args)
            self._owned_storage = None
            self._storage = None
        if self._api_client:
            await self._api_client.__aexit__(*args)
            self._api_client = None
            self._fetcher = None

    # Event subscription methods
    def on_attempt_started(self, callback: Callable[[SelectedFile], Any]):
        """Called when an attempt enters Signing. Receives SelectedFile."""
        self._events.on(ATTEMPT_STARTED, callback)

    def on_upload_begin(self, callback: Callable[[UploadAttempt], Any]):
        """Called when an attempt enters Uploading. Receives UploadAttempt."""
        self._events.on(UPLOAD_BEGIN, callback)

    def on_failure(self, callback: Callable[[UploadAttempt, UploadError], Any]):
        """Called when an attempt fails. Receives UploadAttempt and the error."""
        self._events.on(FAILURE, callback)

    def on_success(self, callback: Callable[[UploadAttempt, StorageResponse], Any]):
        """Called when storage accepts the upload. Receives UploadAttempt and StorageResponse."""
        self._events.on(SUCCESS, callback)

    @property
    def current_attempt(self) -> Optional[UploadAttempt]:
        return self._current

    def is_current(self, attempt: UploadAttempt) -> bool:
        return self._current is not None and self._current.attempt_id == attempt.attempt_id

    async def select(self, file: SelectedFile) -> UploadAttempt:
        """
        Handle a file selection and run the attempt to its terminal state.

        Failures are reported through on_failure and stored on the returned
        attempt; UploadError is never raised from here.
        """
        attempt = self._begin(file)
        return await self._drive(attempt)

    def select_nowait(self, file: SelectedFile) -> "asyncio.Task[UploadAttempt]":
        """
        Handle a file selection without waiting for the outcome.

        The new attempt becomes current immediately; the returned task
        resolves to it once it reaches a terminal state. Must be called
        from a running event loop; otherwise RuntimeError is raised and the
        current attempt is left untouched.
        """
        loop = asyncio.get_running_loop()
        attempt = self._begin(file)
        return loop.create_task(self._drive(attempt))

    def _begin(self, file: SelectedFile) -> UploadAttempt:
        self._last_id += 1
        attempt = UploadAttempt(attempt_id=self._last_id, file=file)

        previous = self._current
        if previous is not None and not previous.status.is_terminal:
            previous.superseded = True
            logger.info(
                f"Attempt #{previous.attempt_id} ({previous.file.name}) superseded by "
                f"#{attempt.attempt_id} ({file.name})"
            )

        self._current = attempt
        return attempt

    async def _notify(self, attempt: UploadAttempt, event_name: str, *args):
        if not self.is_current(attempt):
            logger.debug(f"Dropping '{event_name}' for stale attempt #{attempt.attempt_id}")
            return
        await self._events.emit(event_name, *args)

    async def _drive(self, attempt: UploadAttempt) -> UploadAttempt:
        file = attempt.file

        attempt.status = AttemptStatus.SIGNING
        logger.info(f"Attempt #{attempt.attempt_id}: signing {file.name} ({file.mime_type})")
        await self._notify(attempt, ATTEMPT_STARTED, file)

        try:
            # 1. Obtain the signed policy
            policy = await self._fetcher.request_policy(file.name, file.mime_type)
            attempt.policy = policy

            if policy.content_type.lower() != file.mime_type.lower():
                raise MalformedPolicy(
                    f"policy was issued for {policy.content_type}, file is {file.mime_type}"
                )

            # 2. Merge it into the submission; the policy is not kept afterwards
            fields = build_submission_fields(policy)
            attempt.expected_status = parse_success_status(policy)
            attempt.policy = None

            # 3. Upload straight to storage
            attempt.status = AttemptStatus.UPLOADING
            logger.info(f"Attempt #{attempt.attempt_id}: uploading {file.name} as {fields['key']}")
            await self._notify(attempt, UPLOAD_BEGIN, attempt)

            response = await self._storage.upload(fields, file, attempt.expected_status)
        except UploadError as exc:
            attempt.policy = None
            attempt.error = exc
            attempt.status = AttemptStatus.FAILED
            attempt.finished_at = time.monotonic()
            logger.warning(f"Attempt #{attempt.attempt_id}: {file.name} failed: {exc}")
            await self._notify(attempt, FAILURE, attempt, exc)
            return attempt

        attempt.response = response
        attempt.status = AttemptStatus.SUCCEEDED
        attempt.finished_at = time.monotonic()
        logger.info(
            f"Attempt #{attempt.attempt_id}: {file.name} stored"
            + (f" at {response.location}" if response.location else "")
        )
        await self._notify(attempt, SUCCESS, attempt, response)
        return attempt
