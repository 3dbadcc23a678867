from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from .domain import Artifact, RegistryEntry, PromptSet, SubmissionResult, ABSENT, PENDING
from .intake import PlatformImages, IntakeResponse, ParsedImages, MalformedImages
from .channel import ChannelEvent
from .workflow import ErrorInfo, WorkflowSnapshot


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "intake.response.schema.json": IntakeResponse,
    "intake.platform_images.schema.json": PlatformImages,
    "channel.event.schema.json": ChannelEvent,
    "artifact.schema.json": Artifact,
    "prompt_set.schema.json": PromptSet,
    "error.info.schema.json": ErrorInfo,
    "workflow.snapshot.schema.json": WorkflowSnapshot,
}

__all__ = [
    "Artifact",
    "RegistryEntry",
    "PromptSet",
    "SubmissionResult",
    "ABSENT",
    "PENDING",
    "PlatformImages",
    "IntakeResponse",
    "ParsedImages",
    "MalformedImages",
    "ChannelEvent",
    "ErrorInfo",
    "WorkflowSnapshot",
    "SCHEMA_MODELS",
]
