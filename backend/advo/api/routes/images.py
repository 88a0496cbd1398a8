from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from advo.api.deps import OptionalUser
from advo.images import (
    STORAGE_MODES,
    ImageValidationError,
    store_image,
    validate_image,
)
from advo.models import ImageUploaded, UserRole

router = APIRouter(prefix="/images", tags=["images"])


@router.post("", response_model=ImageUploaded)
async def upload_image(
    *,
    current_user: OptionalUser = None,
    file: UploadFile | None = File(default=None),
    type: str | None = Form(default=None),
    storage: str = Form(default="disk"),
) -> Any:
    """
    Upload a resource profile or banner image.
    """
    if current_user is None or current_user.role != UserRole.ADMIN:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    if storage not in STORAGE_MODES:
        raise HTTPException(status_code=400, detail="Invalid storage. Must be 'disk' or 'memory'")

    content = await file.read()
    try:
        validate_image(image_type=type, mime_type=file.content_type, size=len(content))
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    stored = store_image(content, mime_type=file.content_type or "", storage=storage)
    return ImageUploaded(
        type=type or "",
        mime_type=file.content_type or "",
        storage=stored.storage,
        file_path=stored.file_path,
        image_data=stored.image_data,
    )
