"""
Image upload routes for menu pictures and the restaurant logo.

Files are stored in the upload directory under a generated name and
served by the app from ``/uploads/<name>``.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from flame_kitchen.api.deps import require_roles
from flame_kitchen.core.config import get_settings
from flame_kitchen.models import UserRole

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/upload",
    tags=["Upload"],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
CHUNK_SIZE = 64 * 1024


def upload_dir() -> Path:
    path = Path(settings.upload_directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


async def store_image(upload: Optional[UploadFile], prefix: str) -> str:
    """Validate and save an uploaded image, returning its stored filename."""
    if upload is None or not upload.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    extension = ALLOWED_CONTENT_TYPES.get(upload.content_type or "")
    if extension is None:
        raise HTTPException(status_code=400, detail="Only image files are allowed (jpeg, png, gif, webp)")

    # Extension follows the checked content type, never the client filename
    filename = f"{prefix}-{uuid.uuid4().hex}{extension}"
    target = upload_dir() / filename

    size = 0
    limit = settings.max_upload_size_bytes
    try:
        with open(target, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > limit:
                    raise HTTPException(
                        status_code=400,
                        detail=f"File too large. Maximum size is {settings.max_upload_size_mb}MB",
                    )
                out.write(chunk)
    except HTTPException:
        target.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    logger.info(f"Stored upload {filename} ({size} bytes)")
    return filename


@router.post("/menu-image", summary="Upload Menu Image")
async def upload_menu_image(image: Optional[UploadFile] = File(None)) -> dict:
    filename = await store_image(image, "image")
    return {"message": "Image uploaded successfully", "url": f"/uploads/{filename}", "filename": filename}


@router.post("/logo", summary="Upload Restaurant Logo")
async def upload_logo(logo: Optional[UploadFile] = File(None)) -> dict:
    filename = await store_image(logo, "logo")
    return {"message": "Logo uploaded successfully", "url": f"/uploads/{filename}", "filename": filename}


@router.delete("/menu-image/{filename}", summary="Delete Menu Image")
async def delete_menu_image(filename: str) -> dict:
    directory = upload_dir().resolve()
    target = (directory / filename).resolve()
    if Path(filename).name != filename or filename.startswith(".") or target.parent != directory:
        raise HTTPException(status_code=400, detail="Invalid filename")

    if not target.is_file():
        raise HTTPException(status_code=404, detail="Image not found")

    target.unlink()
    logger.info(f"Deleted upload {filename}")
    return {"message": "Image deleted successfully"}
