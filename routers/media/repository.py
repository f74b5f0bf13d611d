"""Media repository layer."""

from sqlalchemy.orm import Session


def get_media(db: Session, *, media_id: str):
    from models import MediaFile

    return db.query(MediaFile).filter(MediaFile.id == media_id).first()


def create_media(db: Session, *, media_id: str, file_data: bytes, mime_type: str, created_at):
    from models import MediaFile

    media = MediaFile(
        id=media_id,
        file_data=file_data,
        mime_type=mime_type,
        created_at=created_at,
    )
    db.add(media)
    db.flush()
    return media
