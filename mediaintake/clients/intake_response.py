"""
Parsing of intake webhook responses.

The webhook is loose about its shape: the body may be an object or a
one-element array wrapping it, and ``images`` may be an object or a
JSON-encoded string of one. ``normalize_response`` folds those variants into
a tagged ``ParsedImages | MalformedImages`` result; ``parse_intake_response``
turns a parsed result into per-platform artifacts.
"""
from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from mediaintake.shared.logging_utils import warning as log_warning
from mediaintake.specs.common.enums import ArtifactKind, PlatformId, kind_for
from mediaintake.specs.common.errors import MalformedResponse, NoArtifactsError
from mediaintake.specs.models.domain import Artifact, SubmissionResult
from mediaintake.specs.models.intake import (
    MalformedImages,
    NormalizedResponse,
    ParsedImages,
    PlatformImages,
)

# Checked in this order; the first non-empty one becomes the display locator
LOCATOR_FIELDS = ("preview_url", "cloudinary_url", "download_url")


def _unwrap(body: Any) -> Optional[dict]:
    if isinstance(body, list):
        if len(body) == 1 and isinstance(body[0], dict):
            return body[0]
        return None
    if isinstance(body, dict):
        return body
    return None


def normalize_response(body: Any) -> NormalizedResponse:
    obj = _unwrap(body)
    if obj is None:
        return MalformedImages(reason=f"expected an object or one-element array, got {type(body).__name__}")

    token = obj.get("ws_token")
    if not isinstance(token, str) or not token:
        token = None

    images = obj.get("images")
    if isinstance(images, dict):
        return ParsedImages(images=images, token=token)
    if isinstance(images, str):
        try:
            decoded = json.loads(images)
        except json.JSONDecodeError as exc:
            return MalformedImages(reason=f"images string is not valid JSON: {exc.msg}")
        if isinstance(decoded, dict):
            return ParsedImages(images=decoded, token=token)
        return MalformedImages(reason=f"images string decodes to {type(decoded).__name__}, not an object")
    if images is None:
        return MalformedImages(reason="response has no images collection")
    return MalformedImages(reason=f"images has unsupported type {type(images).__name__}")


def extract_artifact(entry: Any, kind: ArtifactKind) -> Optional[Artifact]:
    if not isinstance(entry, dict):
        return None
    fields = PlatformImages.model_validate(entry)
    locator = next(
        (value for value in (getattr(fields, name) for name in LOCATOR_FIELDS) if value),
        None,
    )
    if locator is None:
        return None
    return Artifact(locator=locator, kind=kind, downloadLocator=fields.download_url or locator)


def parse_intake_response(
    body: Any,
    platforms: Iterable[PlatformId],
    *,
    run_trace_id: Optional[str] = None,
) -> SubmissionResult:
    """Build a ``SubmissionResult`` from a decoded JSON body.

    Raises ``MalformedResponse`` when no images mapping can be extracted and
    ``NoArtifactsError`` when none of ``platforms`` resolves to an artifact.
    """
    platforms = tuple(PlatformId(p) for p in platforms)
    normalized = normalize_response(body)
    if isinstance(normalized, MalformedImages):
        raise MalformedResponse(f"Malformed intake response: {normalized.reason}", details={"reason": normalized.reason})

    outputs = {}
    for platform in platforms:
        entry = normalized.images.get(platform.value)
        try:
            artifact = extract_artifact(entry, kind_for(platform))
        except ValidationError as exc:
            log_warning(run_trace_id, "intake:entry_invalid", platform=platform.value, error=str(exc))
            artifact = None
        if artifact is not None:
            outputs[platform] = artifact

    if not outputs:
        raise NoArtifactsError(details={"platforms": [p.value for p in platforms]})
    return SubmissionResult(token=normalized.token, outputs=outputs)


__all__ = [
    "LOCATOR_FIELDS",
    "normalize_response",
    "extract_artifact",
    "parse_intake_response",
]
