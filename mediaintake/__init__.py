"""Upload an image, get platform-tailored media back.

The intake webhook returns the static images synchronously; the video is
announced later over a WebSocket keyed by the correlation token the webhook
hands out. ``UploadOrchestrator`` sequences the two.
"""
from mediaintake.clients.intake_client import IntakeClient
from mediaintake.clients.notification_channel import ChannelHandle, NotificationChannel
from mediaintake.media.source_image import SourceImage, load_source_image
from mediaintake.shared.logging_utils import configure_logging
from mediaintake.shared.settings import IntakeSettings
from mediaintake.specs.common.enums import ArtifactKind, EntryState, PlatformId, ProcessingStatus
from mediaintake.specs.common.errors import (
    ChannelError,
    FileReadError,
    MalformedResponse,
    MediaIntakeError,
    NoArtifactsError,
    TransportError,
)
from mediaintake.workflow.orchestrator import UploadOrchestrator
from mediaintake.workflow.prompt_store import PromptStore
from mediaintake.workflow.registry import OutputRegistry


def build_orchestrator(settings: IntakeSettings, **kwargs) -> UploadOrchestrator:
    """Wire client, channel and orchestrator from one settings object."""
    configure_logging()
    client = IntakeClient(settings)
    channel = NotificationChannel(settings.channelUrlTemplate)
    kwargs.setdefault("tick_interval", settings.tickInterval)
    kwargs.setdefault("max_image_bytes", settings.maxImageBytes)
    return UploadOrchestrator(client, channel, **kwargs)


__all__ = [
    "IntakeClient",
    "NotificationChannel",
    "ChannelHandle",
    "SourceImage",
    "load_source_image",
    "IntakeSettings",
    "ArtifactKind",
    "EntryState",
    "PlatformId",
    "ProcessingStatus",
    "MediaIntakeError",
    "TransportError",
    "MalformedResponse",
    "NoArtifactsError",
    "ChannelError",
    "FileReadError",
    "UploadOrchestrator",
    "PromptStore",
    "OutputRegistry",
    "build_orchestrator",
]
