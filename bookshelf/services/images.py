"""
Image Service

Validation for user-supplied images and file storage for book covers.

Two image kinds, two storage strategies:

- Avatars are stored inline on the user row. A value is either an
  http(s) URL ending in an image extension or a base64 data URI; it is
  validated here and persisted verbatim.
- Book covers are stored as files under settings.upload_dir and the row
  keeps only the file name. A cover may arrive as a multipart upload or
  as a base64 data URI in a JSON body; both go through the same MIME
  allow-list and size ceiling before being written.
"""

import base64
import binascii
import logging
import re
import uuid
from collections.abc import Container
from dataclasses import dataclass
from pathlib import Path

from bookshelf.exceptions import InvalidAvatarFormat, InvalidImageFormat, PayloadTooLarge

logger = logging.getLogger(__name__)

# MIME type -> file extension used when storing a cover
COVER_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
}

AVATAR_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})

DATA_URI_RE = re.compile(r"^data:(image/[a-z+.-]+);base64,(.*)$", re.IGNORECASE | re.DOTALL)
BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
IMAGE_URL_RE = re.compile(r"^https?://[^\s/]+\S*\.(jpe?g|png|gif|webp)$", re.IGNORECASE)


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image bytes plus their declared MIME type."""

    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def decode_data_uri(
    value: str,
    allowed_types: Container[str],
    max_bytes: int,
) -> ImagePayload:
    """
    Decode a ``data:image/<type>;base64,<payload>`` string.

    Args:
        value: The data URI
        allowed_types: Accepted MIME types
        max_bytes: Largest accepted decoded size

    Returns:
        ImagePayload with the decoded bytes

    Raises:
        InvalidImageFormat: Not a data URI, disallowed type, or bad base64
        PayloadTooLarge: Decoded image exceeds max_bytes
    """
    match = DATA_URI_RE.match(value.strip())
    if match is None:
        raise InvalidImageFormat("Image must be a base64 data URI")

    content_type = match.group(1).lower()
    if content_type not in allowed_types:
        raise InvalidImageFormat(f"Unsupported image type: {content_type}")

    encoded = re.sub(r"\s", "", match.group(2))
    if not encoded or not BASE64_RE.match(encoded):
        raise InvalidImageFormat("The provided base64 data is not valid")

    # Reject before decoding so an oversized payload is never materialised
    estimated = (len(encoded) * 3) // 4
    if estimated > max_bytes + 2:
        raise PayloadTooLarge(f"Image exceeds the {max_bytes // (1024 * 1024)}MB limit")

    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageFormat("The provided base64 data is not valid") from e

    if len(content) > max_bytes:
        raise PayloadTooLarge(f"Image exceeds the {max_bytes // (1024 * 1024)}MB limit")

    return ImagePayload(content=content, content_type=content_type)


def validate_avatar(value: str, max_bytes: int) -> str:
    """
    Check that an avatar value has one of the two accepted shapes.

    Returns:
        The value unchanged (it is stored verbatim)

    Raises:
        InvalidAvatarFormat: Neither an image URL nor an image data URI
        PayloadTooLarge: Inline image exceeds max_bytes
    """
    value = value.strip()

    if value.lower().startswith("data:"):
        try:
            decode_data_uri(value, AVATAR_TYPES, max_bytes)
        except InvalidImageFormat as e:
            raise InvalidAvatarFormat(e.message) from e
        return value

    if IMAGE_URL_RE.match(value):
        return value

    raise InvalidAvatarFormat()


def validate_upload(content: bytes, content_type: str | None, max_bytes: int) -> ImagePayload:
    """
    Validate a multipart cover upload.

    Raises:
        InvalidImageFormat: MIME type not JPEG, PNG or GIF
        PayloadTooLarge: File exceeds max_bytes
    """
    content_type = (content_type or "").lower()
    if content_type not in COVER_TYPES:
        raise InvalidImageFormat()

    if len(content) > max_bytes:
        raise PayloadTooLarge(f"Image exceeds the {max_bytes // (1024 * 1024)}MB limit")

    return ImagePayload(content=content, content_type=content_type)


class CoverStorage:
    """
    Book cover files on local disk.

    Files get random names, so a stored name never collides and never
    carries anything the client chose.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, filename: str) -> Path:
        # Stored names are generated here; reject anything path-like anyway
        return self.directory / Path(filename).name

    def save(self, image: ImagePayload) -> str:
        """
        Write a cover to disk.

        Returns:
            The generated file name to store on the book row
        """
        extension = COVER_TYPES[image.content_type]
        filename = f"cover-{uuid.uuid4().hex}{extension}"

        self.directory.mkdir(parents=True, exist_ok=True)
        self.path_for(filename).write_bytes(image.content)

        logger.debug(f"Stored cover {filename} ({image.size} bytes)")
        return filename

    def remove(self, filename: str | None) -> bool:
        """
        Delete a stored cover, best-effort.

        Failure is logged and reported through the return value; it never
        raises, because the row change it accompanies has already been
        committed.

        Returns:
            True if a file was removed
        """
        if not filename:
            return False

        path = self.path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"Cover file already missing: {path}")
            return False
        except OSError as e:
            logger.warning(f"Could not remove cover file {path}: {e}")
            return False

        logger.debug(f"Removed cover {filename}")
        return True
