"""Media blob facade.

Domains that attach photos call these helpers instead of importing the media
domain directly.
"""

from sqlalchemy.orm import Session


def store_media(db: Session, *, data: bytes, mime_type: str, ids=None) -> str:
    from routers.media import service as media_service

    return media_service.store_media(db, data=data, mime_type=mime_type, ids=ids)


def media_url(media_id: str) -> str:
    return f"/media/{media_id}"
