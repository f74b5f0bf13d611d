"""Groups schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class AddMembersRequest(BaseModel):
    usernames: List[str] = Field(..., min_length=1, example=["maria", "luigi"])


class AddedUser(BaseModel):
    username: str
    user_id: str


class AddMembersResponse(BaseModel):
    group_id: str
    group_name: str
    added_users: List[AddedUser]
    failed_users: List[str]
    added_by: str
    member_count: int
    timestamp: str


class LeaveGroupResponse(BaseModel):
    group_id: str
    user_id: str
    username: str
    is_group_deleted: bool
    remaining_member_count: int


class SetGroupNameRequest(BaseModel):
    name: str = Field(..., example="Weekend Hikers")


class SetGroupNameResponse(BaseModel):
    group_id: str
    old_name: str
    new_name: str
    member_count: int


class SetGroupPhotoResponse(BaseModel):
    group_id: str
    old_photo_id: Optional[str] = None
    new_photo_id: str


class GroupMember(BaseModel):
    user_id: str
    name: str
    photo_id: Optional[str] = None


class GroupMembersResponse(BaseModel):
    group_id: str
    group_name: str
    members: List[GroupMember]
    member_count: int


class GroupSummary(BaseModel):
    group_id: str
    group_name: str
