from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import get_current_user

from .schemas import (
    AddMembersRequest,
    AddMembersResponse,
    GroupMembersResponse,
    GroupSummary,
    LeaveGroupResponse,
    SetGroupNameRequest,
    SetGroupNameResponse,
    SetGroupPhotoResponse,
)
from .service import (
    add_members as service_add_members,
    get_groups_for_user as service_get_groups_for_user,
    leave_group as service_leave_group,
    list_group_members as service_list_group_members,
    set_group_name as service_set_group_name,
    set_group_photo as service_set_group_photo,
)

router = APIRouter(prefix="/groups", tags=["Groups"])


@router.get("", response_model=List[GroupSummary])
def list_groups(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """List the groups the caller belongs to."""
    return service_get_groups_for_user(db, user_id=current_user.id)


@router.get("/{group_id}/members", response_model=GroupMembersResponse)
def list_members(
    group_id: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_list_group_members(db, group_id=group_id, user_id=current_user.id)


@router.post("/{group_id}/members", response_model=AddMembersResponse)
def add_members(
    group_id: str,
    request: AddMembersRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Add users by username. Unknown names and existing members are reported as failed."""
    return service_add_members(
        db, group_id=group_id, adder_id=current_user.id, usernames=request.usernames
    )


@router.delete("/{group_id}/members/me", response_model=LeaveGroupResponse)
def leave_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Leave a group. The group is deleted when its last member leaves."""
    return service_leave_group(db, group_id=group_id, user_id=current_user.id)


@router.put("/{group_id}/name", response_model=SetGroupNameResponse)
def set_group_name(
    group_id: str,
    request: SetGroupNameRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_set_group_name(
        db, group_id=group_id, user_id=current_user.id, new_name=request.name
    )


@router.put("/{group_id}/photo", response_model=SetGroupPhotoResponse)
def set_group_photo(
    group_id: str,
    photo: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    data = photo.file.read()
    return service_set_group_photo(
        db,
        group_id=group_id,
        user_id=current_user.id,
        photo=data,
        mime_type=photo.content_type,
    )
