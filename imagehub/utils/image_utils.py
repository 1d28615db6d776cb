"""
ImageHub - Image Utilities
Uploaded image attachments, base64 / data URI conversion and image probing
"""

from __future__ import annotations
import base64
import logging
import mimetypes
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger("[ImageHub]")

PNG_CONTENT_TYPE = "image/png"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Pillow format name -> MIME type
_FORMAT_CONTENT_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}


@dataclass(frozen=True)
class ImageInfo:
    """Format and dimensions read from image bytes"""
    width: int
    height: int
    content_type: str


def probe_image(image_bytes: bytes) -> Optional[ImageInfo]:
    """
    Read format and dimensions from image bytes without decoding pixels

    Returns:
        ImageInfo or None when the bytes are not a recognizable image
    """
    try:
        with Image.open(BytesIO(image_bytes)) as image:
            content_type = _FORMAT_CONTENT_TYPES.get(image.format or "", DEFAULT_CONTENT_TYPE)
            return ImageInfo(width=image.width, height=image.height, content_type=content_type)
    except (UnidentifiedImageError, OSError):
        return None


def to_data_uri(b64_string: str, content_type: str = PNG_CONTENT_TYPE) -> str:
    """Wrap a base64 payload as a data URI"""
    return f"data:{content_type};base64,{b64_string}"


def decode_data_uri(data_uri: str) -> bytes:
    """
    Decode base64 image data, with or without a data URI prefix
    """
    if data_uri.startswith("data:") and "," in data_uri:
        data_uri = data_uri.split(",", 1)[1]
    return base64.b64decode(data_uri)


@dataclass(frozen=True)
class ImageAttachment:
    """
    One uploaded image: either binary content with a filename, or a remote URL.
    """
    data: Optional[bytes] = None
    filename: str = "image.png"
    content_type: str = PNG_CONTENT_TYPE
    url: Optional[str] = None

    @classmethod
    def from_bytes(cls, data: bytes, filename: str = "image.png") -> "ImageAttachment":
        info = probe_image(data)
        if info:
            content_type = info.content_type
        else:
            content_type = mimetypes.guess_type(filename)[0] or DEFAULT_CONTENT_TYPE
        return cls(data=data, filename=filename, content_type=content_type)

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageAttachment":
        """Read a local image file, detecting its content type with Pillow"""
        path = Path(path)
        logger.info(f"[ImageHub] Loading attachment: {path.name}")
        return cls.from_bytes(path.read_bytes(), filename=path.name)

    @classmethod
    def from_url(cls, url: str) -> "ImageAttachment":
        url = url.strip()
        return cls(url=url, filename=url.rstrip("/").rsplit("/", 1)[-1] or "image")

    @property
    def has_file(self) -> bool:
        return bool(self.data)

    @property
    def has_url(self) -> bool:
        return bool(self.url and self.url.strip())

    def to_data_uri(self) -> str:
        """Inline representation for providers that accept image URLs"""
        if self.has_url:
            return self.url
        return to_data_uri(base64.b64encode(self.data).decode("ascii"), self.content_type)

    def as_upload(self) -> tuple[str, bytes, str]:
        """(filename, content, content_type) tuple for multipart uploads"""
        return (self.filename, self.data, self.content_type)
