import base64
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from advo.core.config import settings

logger = logging.getLogger(__name__)

IMAGE_TYPES = ("profile", "banner")
STORAGE_MODES = ("disk", "memory")
ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}
UPLOAD_URL_PREFIX = "/uploads"


class ImageValidationError(ValueError):
    pass


@dataclass
class StoredImage:
    storage: str
    file_path: str | None = None
    image_data: str | None = None


def validate_image(*, image_type: str | None, mime_type: str | None, size: int) -> None:
    if image_type not in IMAGE_TYPES:
        raise ImageValidationError("Invalid image type. Must be 'profile' or 'banner'")
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ImageValidationError("Invalid file type. Allowed: JPEG, PNG, WEBP, GIF")
    if size <= 0:
        raise ImageValidationError("No file provided")
    if size > settings.MAX_UPLOAD_BYTES:
        raise ImageValidationError(
            f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES} bytes"
        )


def store_image(
    content: bytes, *, mime_type: str, storage: str = "disk", upload_dir: str | None = None
) -> StoredImage:
    """Persist an already validated image.

    ``disk`` writes a uuid-named file below the upload directory and returns its
    public URL path; ``memory`` returns the bytes as a base64 data URL.
    """
    if storage == "memory":
        encoded = base64.b64encode(content).decode("ascii")
        return StoredImage(storage="memory", image_data=f"data:{mime_type};base64,{encoded}")

    target_dir = Path(upload_dir or settings.UPLOAD_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4().hex}{ALLOWED_MIME_TYPES[mime_type]}"
    (target_dir / filename).write_bytes(content)
    logger.info("Stored uploaded image %s (%d bytes)", filename, len(content))
    return StoredImage(storage="disk", file_path=f"{UPLOAD_URL_PREFIX}/{filename}")
