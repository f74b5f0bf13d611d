"""Media domain service layer.

Blobs are written into the caller's session; whoever owns the transaction
commits them together with the row that points at them.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from core.config import ALLOWED_IMAGE_TYPES, MEDIA_MAX_MB, MEDIA_MIN_BYTES
from core.errors import NotFoundError, ValidationError
from core.ids import default_generator

from . import repository as media_repository

logger = logging.getLogger(__name__)


def validate_image(data: bytes, mime_type: str):
    if mime_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"Unsupported image type {mime_type}. Allowed types: {', '.join(ALLOWED_IMAGE_TYPES)}"
        )
    if not data or len(data) < MEDIA_MIN_BYTES:
        raise ValidationError("Image data is too small or empty")
    if len(data) > MEDIA_MAX_MB * 1024 * 1024:
        raise ValidationError(f"Image too large. Maximum size is {MEDIA_MAX_MB}MB")


def store_media(db: Session, *, data: bytes, mime_type: str, ids=None) -> str:
    validate_image(data, mime_type)
    generator = ids or default_generator
    media_id = generator.new_id(db, "media")
    media_repository.create_media(
        db,
        media_id=media_id,
        file_data=data,
        mime_type=mime_type,
        created_at=datetime.utcnow(),
    )
    logger.info(f"Stored media {media_id} ({mime_type}, {len(data)} bytes)")
    return media_id


def get_media(db: Session, *, media_id: str):
    media = media_repository.get_media(db, media_id=media_id)
    if not media:
        raise NotFoundError(f"Media {media_id} not found")
    return {"data": media.file_data, "mime_type": media.mime_type}
