"""Conversations schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class StartConversationRequest(BaseModel):
    recipient_ids: List[str] = Field(
        ..., description="User ids to add besides the caller", example=["a1B2c3D4e5F6"]
    )
    title: Optional[str] = Field(None, description="Group name; ignored for direct chats", example="Book Club")
    is_group: bool = False


class StartConversationResponse(BaseModel):
    conversation_id: str
    created: bool
    is_group: bool
    title: Optional[str] = None
    participants: List[str]


class LastMessage(BaseModel):
    type: str
    content: str
    timestamp: str


class ConversationSummary(BaseModel):
    conversation_id: str
    title: Optional[str] = None
    photo_id: Optional[str] = None
    is_group: bool
    created_at: str
    last_message: Optional[LastMessage] = None


class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]
    total: int
