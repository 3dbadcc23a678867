import base64
import io
import os
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field

from mediaintake.shared.settings import DEFAULT_MAX_IMAGE_BYTES
from mediaintake.specs.common.errors import FileReadError


class SourceImage(BaseModel):
    """The user's image, read and decoded locally before anything is sent."""

    model_config = ConfigDict(frozen=True)

    filename: str
    contentType: str
    data: bytes = Field(repr=False)
    width: int
    height: int

    def data_uri(self) -> str:
        """Return the image as a ``data:`` URI for local previews."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.contentType};base64,{encoded}"


def _read_bytes(source: Union[str, os.PathLike, bytes]) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        return Path(source).read_bytes()
    except OSError as exc:
        raise FileReadError(f"Could not read image file: {source}", details={"error": str(exc)}) from exc


def load_source_image(
    source: Union[str, os.PathLike, bytes],
    *,
    filename: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
) -> SourceImage:
    """Read and decode an image from a path or raw bytes.

    Raises ``FileReadError`` when the payload is empty, too large, or not a
    decodable image.
    """
    data = _read_bytes(source)
    if not filename:
        filename = Path(source).name if not isinstance(source, (bytes, bytearray)) else "upload"
    if not data:
        raise FileReadError(f"Image is empty: {filename}")
    if len(data) > max_bytes:
        raise FileReadError(
            f"Image exceeds the {max_bytes} byte limit: {filename}",
            details={"size": len(data), "limit": max_bytes},
        )

    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as exc:
        raise FileReadError(f"Could not decode image: {filename}", details={"error": str(exc)}) from exc

    content_type = Image.MIME.get(fmt or "", "application/octet-stream")
    return SourceImage(
        filename=filename,
        contentType=content_type,
        data=data,
        width=width,
        height=height,
    )
