from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from core.db import get_db

from .service import get_media as service_get_media

router = APIRouter(prefix="/media", tags=["Media"])


@router.get("/{media_id}")
def get_media(media_id: str, db: Session = Depends(get_db)):
    """Serve a stored image blob."""
    media = service_get_media(db, media_id=media_id)
    return Response(
        content=media["data"],
        media_type=media["mime_type"],
        headers={"Cache-Control": "public, max-age=86400"},
    )
