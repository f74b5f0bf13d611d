from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import UnauthorizedError
from routers.dependencies import get_current_user

from .schemas import (
    SearchUsersResponse,
    UpdatePhotoResponse,
    UpdateUsernameRequest,
    UpdateUsernameResponse,
)
from .service import (
    search_users as service_search_users,
    update_user_photo as service_update_user_photo,
    update_username as service_update_username,
)

router = APIRouter(tags=["Users"])


@router.put("/user", response_model=UpdateUsernameResponse)
def update_username(
    request: UpdateUsernameRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Change the caller's username."""
    return service_update_username(db, user_id=current_user.id, new_name=request.name)


@router.get("/users", response_model=SearchUsersResponse)
def search_users(
    query: str = Query(default="", max_length=16),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Search users by a substring of their name. A blank query lists everyone."""
    return service_search_users(db, query=query)


@router.put("/user/{user_id}/photo", response_model=UpdatePhotoResponse)
def update_user_photo(
    user_id: str,
    photo: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Replace the caller's profile photo."""
    if user_id != current_user.id:
        raise UnauthorizedError("Can only update your own photo")
    data = photo.file.read()
    return service_update_user_photo(
        db, user_id=current_user.id, photo=data, mime_type=photo.content_type
    )
