"""Users schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    name: str = Field(..., description="Username to log in as", example="Maria")


class LoginResponse(BaseModel):
    identifier: str
    name: str
    created: bool


class UpdateUsernameRequest(BaseModel):
    name: str = Field(..., description="New username", example="maria_rossi")


class UpdateUsernameResponse(BaseModel):
    user_id: str
    old_name: str
    new_name: str


class UserSummary(BaseModel):
    user_id: str
    name: str
    photo_id: Optional[str] = None


class SearchUsersResponse(BaseModel):
    users: List[UserSummary]
    total: int


class UpdatePhotoResponse(BaseModel):
    user_id: str
    old_photo_id: Optional[str] = None
    new_photo_id: str
