"""
Upload-and-notify workflow.

``UploadOrchestrator`` is the single writer of workflow state: processing
status, current error, elapsed-time counter and the output registry. The
intake client and notification channel only return data or raise; every
change is applied here, on the event loop thread.

Flow::

    select_image -> AWAITING_PROMPTS
    confirm_prompts -> SUBMITTING -> PARTIALLY_RESOLVED -> AWAITING_ASYNC_ARTIFACT -> COMPLETE
                                  \\-> COMPLETE (no async artifact expected)
                                  \\-> FAILED

Selecting a new image from any non-idle state abandons the current workflow
(closing an open channel first), passes through IDLE, and stages the new image.
"""
from __future__ import annotations

import asyncio
import os
import uuid
from typing import Callable, Iterable, List, Mapping, Optional, Union

from mediaintake.clients.intake_client import IntakeClient
from mediaintake.clients.notification_channel import ChannelHandle, NotificationChannel
from mediaintake.media.source_image import SourceImage, load_source_image
from mediaintake.shared.logging_utils import info as log_info, error as log_error
from mediaintake.shared.settings import DEFAULT_MAX_IMAGE_BYTES
from mediaintake.specs.common.enums import (
    ASYNC_PLATFORM,
    DEFAULT_PLATFORMS,
    ArtifactKind,
    EntryState,
    PlatformId,
    ProcessingStatus,
)
from mediaintake.specs.common.errors import ChannelError, InvalidTransitionError, MediaIntakeError
from mediaintake.specs.models.domain import Artifact, PromptSet, SubmissionResult
from mediaintake.specs.models.workflow import ErrorInfo, WorkflowSnapshot
from mediaintake.workflow.prompt_store import PromptStore
from mediaintake.workflow.registry import OutputRegistry

Listener = Callable[[WorkflowSnapshot], None]
ImageSource = Union[str, os.PathLike, bytes, SourceImage]

S = ProcessingStatus

_TRANSITIONS = {
    S.IDLE: {S.AWAITING_PROMPTS, S.FAILED},
    S.AWAITING_PROMPTS: {S.SUBMITTING, S.IDLE},
    S.SUBMITTING: {S.PARTIALLY_RESOLVED, S.COMPLETE, S.FAILED, S.IDLE},
    S.PARTIALLY_RESOLVED: {S.AWAITING_ASYNC_ARTIFACT, S.IDLE},
    S.AWAITING_ASYNC_ARTIFACT: {S.COMPLETE, S.FAILED, S.IDLE},
    S.COMPLETE: {S.IDLE},
    S.FAILED: {S.IDLE},
}

# The elapsed counter runs only while the workflow waits on the network
_TIMED = {S.SUBMITTING, S.PARTIALLY_RESOLVED, S.AWAITING_ASYNC_ARTIFACT}


class UploadOrchestrator:
    def __init__(
        self,
        client: IntakeClient,
        channel: NotificationChannel,
        prompt_store: Optional[PromptStore] = None,
        *,
        platforms: Iterable[PlatformId] = DEFAULT_PLATFORMS,
        tick_interval: float = 1.0,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self._client = client
        self._channel = channel
        self.prompts = prompt_store or PromptStore()
        self.registry = OutputRegistry(platforms)
        self.tick_interval = tick_interval
        self.max_image_bytes = max_image_bytes

        self.status: ProcessingStatus = S.IDLE
        self.error: Optional[MediaIntakeError] = None
        self.elapsed_seconds = 0
        self.staged_image: Optional[SourceImage] = None
        self.submitted_prompts: Optional[PromptSet] = None
        self.run_trace_id: Optional[str] = None

        self._generation = 0
        self._handle: Optional[ChannelHandle] = None
        self._waiter: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    # -- observation -------------------------------------------------------

    @property
    def platforms(self):
        return self.registry.platforms

    @property
    def channel_open(self) -> bool:
        return self._handle is not None and not self._handle.closed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every transition."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            runTraceId=self.run_trace_id,
            status=self.status,
            error=ErrorInfo(code=self.error.code, message=str(self.error)) if self.error else None,
            elapsedSeconds=self.elapsed_seconds,
            outputs={p.value: entry for p, entry in self.registry.snapshot().items()},
        )

    # -- events ------------------------------------------------------------

    def select_image(self, source: ImageSource, *, filename: Optional[str] = None) -> ProcessingStatus:
        """Stage a new source image, abandoning any workflow in progress.

        Abandonment passes through IDLE, so subscribers see an IDLE snapshot
        before the AWAITING_PROMPTS (or FAILED) one.
        """
        if self.status is not S.IDLE:
            self._abandon()
        self._generation += 1
        self.run_trace_id = uuid.uuid4().hex
        try:
            image = source if isinstance(source, SourceImage) else load_source_image(
                source, filename=filename, max_bytes=self.max_image_bytes
            )
        except MediaIntakeError as exc:
            self._fail(exc)
            return self.status
        self.staged_image = image
        log_info(self.run_trace_id, "workflow:image_staged", filename=image.filename, size=len(image.data))
        self._transition(S.AWAITING_PROMPTS)
        return self.status

    def cancel(self) -> ProcessingStatus:
        """Discard the staged image while prompts are being configured."""
        self._require(S.AWAITING_PROMPTS, "cancel")
        self.staged_image = None
        self._transition(S.IDLE)
        return self.status

    async def confirm_prompts(self, custom: Optional[Mapping[str, str]] = None) -> ProcessingStatus:
        """Freeze the prompt set (defaults, or ``custom`` on top of them) and submit.

        Returns once the synchronous phase is settled; the async artifact, if
        any, is awaited in the background (see ``wait_for_completion``).
        """
        self._require(S.AWAITING_PROMPTS, "confirm prompts")
        prompts = self.prompts.use_custom(custom) if custom is not None else self.prompts.use_defaults()
        self.submitted_prompts = prompts
        image = self.staged_image
        generation = self._generation
        run_trace_id = self.run_trace_id
        self._transition(S.SUBMITTING)

        try:
            result = await asyncio.to_thread(self._client.submit, image, prompts, run_trace_id=run_trace_id)
        except MediaIntakeError as exc:
            if generation == self._generation:
                self._fail(exc)
            return self.status

        if generation != self._generation:
            log_info(run_trace_id, "workflow:stale_submission_dropped")
            return self.status
        self._apply_submission(result, generation)
        return self.status

    async def wait_for_completion(self) -> ProcessingStatus:
        """Wait until the async artifact resolves or fails; no-op otherwise."""
        waiter = self._waiter
        if waiter is not None:
            await asyncio.gather(waiter, return_exceptions=True)
        return self.status

    # -- teardown ----------------------------------------------------------

    def close(self) -> None:
        """Release the channel and timers. The orchestrator can be reused."""
        if self.status is not S.IDLE:
            self._abandon()
        else:
            self._teardown()

    async def aclose(self) -> None:
        handle, waiter, ticker = self._handle, self._waiter, self._ticker
        self.close()
        pending = [t for t in (waiter, ticker) if t is not None]
        if handle is not None:
            await handle.aclose()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> "UploadOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -- internals ---------------------------------------------------------

    def _apply_submission(self, result: SubmissionResult, generation: int) -> None:
        for platform, artifact in result.outputs.items():
            if platform in self.registry:
                self.registry.resolve(platform, artifact)

        expects_async = (
            result.token is not None
            and ASYNC_PLATFORM in self.registry
            and self.registry.get(ASYNC_PLATFORM).state is EntryState.ABSENT
        )
        if not expects_async:
            self._transition(S.COMPLETE)
            return

        self.registry.mark_pending(ASYNC_PLATFORM)
        self._transition(S.PARTIALLY_RESOLVED)
        self._open_channel(result.token, generation)
        self._transition(S.AWAITING_ASYNC_ARTIFACT)

    def _open_channel(self, token: str, generation: int) -> None:
        if self._handle is not None and not self._handle.closed:
            raise InvalidTransitionError(
                "A notification channel is already open for this workflow",
                details={"token": self._handle.token},
            )
        self._handle = self._channel.open(token, run_trace_id=self.run_trace_id)
        self._waiter = asyncio.create_task(self._await_artifact(self._handle, generation))

    async def _await_artifact(self, handle: ChannelHandle, generation: int) -> None:
        try:
            locator = await handle.ready()
        except ChannelError as exc:
            if generation == self._generation and handle is self._handle:
                self._handle = None
                self._fail(exc)
            return

        if generation != self._generation or handle is not self._handle:
            return
        self.registry.resolve(
            ASYNC_PLATFORM,
            Artifact(locator=locator, kind=ArtifactKind.VIDEO, downloadLocator=locator),
        )
        await handle.aclose()
        if generation != self._generation:
            return
        self._handle = None
        self._transition(S.COMPLETE)

    def _require(self, expected: ProcessingStatus, action: str) -> None:
        if self.status is not expected:
            raise InvalidTransitionError(
                f"Cannot {action} while {self.status.value}",
                details={"status": self.status.value, "expected": expected.value},
            )

    def _fail(self, exc: MediaIntakeError) -> None:
        self.error = exc
        log_error(self.run_trace_id, "workflow:failed", code=exc.code, error=str(exc))
        self._transition(S.FAILED)

    def _transition(self, new_status: ProcessingStatus) -> None:
        old_status = self.status
        if new_status not in _TRANSITIONS[old_status]:
            raise InvalidTransitionError(
                f"Illegal transition {old_status.value} -> {new_status.value}",
                details={"from": old_status.value, "to": new_status.value},
            )
        self.status = new_status
        if new_status in _TIMED:
            self._start_ticker()
        else:
            self._stop_ticker()
        log_info(self.run_trace_id, "workflow:transition", fromStatus=old_status.value, toStatus=new_status.value)
        self._notify()

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as exc:
                log_error(
                    self.run_trace_id,
                    "workflow:listener_failed",
                    status=snap.status.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

    def _start_ticker(self) -> None:
        if self._ticker is None or self._ticker.done():
            self._ticker = asyncio.get_running_loop().create_task(self._tick())

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self.elapsed_seconds = 0

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.elapsed_seconds += 1

    def _teardown(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        if self._waiter is not None:
            self._waiter.cancel()
            self._waiter = None
        self._stop_ticker()

    def _abandon(self) -> None:
        log_info(self.run_trace_id, "workflow:abandoned", status=self.status.value)
        self._generation += 1
        self._teardown()
        self.registry.reset()
        self.error = None
        self.staged_image = None
        self.submitted_prompts = None
        self._transition(S.IDLE)


__all__ = ["UploadOrchestrator"]
