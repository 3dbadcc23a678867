from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class PlatformImages(BaseModel):
    """One platform's entry in the intake response ``images`` collection."""

    model_config = ConfigDict(extra="allow")

    preview_url: Optional[str] = None
    cloudinary_url: Optional[str] = None
    download_url: Optional[str] = None


class IntakeResponse(BaseModel):
    """Body returned by the intake webhook (after unwrapping a one-element array).

    ``images`` arrives either as an object keyed by platform or as a
    JSON-encoded string of that object.
    """

    model_config = ConfigDict(extra="allow")

    ws_token: Optional[str] = None
    images: Union[Dict[str, PlatformImages], str]


class ParsedImages(BaseModel):
    kind: Literal["parsed"] = "parsed"
    images: Dict[str, Any]
    token: Optional[str] = None


class MalformedImages(BaseModel):
    kind: Literal["malformed"] = "malformed"
    reason: str


NormalizedResponse = Union[ParsedImages, MalformedImages]


__all__ = [
    "PlatformImages",
    "IntakeResponse",
    "ParsedImages",
    "MalformedImages",
    "NormalizedResponse",
]
