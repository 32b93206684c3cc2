"""File upload adapter: multipart image parts -> remote locators, all or nothing"""
import logging
from pathlib import Path
from typing import Iterable, List

from starlette.datastructures import UploadFile

from models import Image
from utils.storage import ImageStorage
from utils.validation import Violation
from webapp.errors import UpstreamFailure, ValidationFailed

logger = logging.getLogger(__name__)


def select_files(parts: Iterable, allowed_formats: Iterable[str], max_files: int,
                 field: str = "images") -> List[UploadFile]:
    """Keep real file parts; empty file inputs are ignored, bad extensions rejected"""
    allowed = {f.lower().lstrip(".") for f in allowed_formats}
    files = [p for p in parts if isinstance(p, UploadFile) and p.filename]
    violations = []
    for f in files:
        suffix = Path(f.filename).suffix.lower().lstrip(".")
        if suffix not in allowed:
            violations.append(Violation(field, f"{f.filename} is not one of {', '.join(sorted(allowed))}"))
    if len(files) > max_files:
        violations.append(Violation(field, f"at most {max_files} images per submission"))
    if violations:
        raise ValidationFailed(violations)
    return files


async def discard_images(storage: ImageStorage, images: Iterable[Image]):
    """Best-effort removal of stored objects; failures are logged"""
    for image in images:
        try:
            await storage.destroy(image.filename)
        except Exception as e:
            logger.error(f"Failed to remove image {image.filename}: {e}")


async def upload_images(storage: ImageStorage, files: List[UploadFile]) -> List[Image]:
    uploaded: List[Image] = []
    try:
        for f in files:
            uploaded.append(await storage.upload(f))
    except Exception as e:
        logger.error(f"Image upload failed after {len(uploaded)}/{len(files)} files: {e}")
        await discard_images(storage, uploaded)
        raise UpstreamFailure("Could not upload images, please try again") from e
    return uploaded
