"""Messages schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from core.config import MESSAGE_MAX_LENGTH


class SendMessageRequest(BaseModel):
    type: str = Field("text", pattern="^(text|photo)$", example="text")
    content: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH, example="See you at eight")
    content_type: Optional[str] = Field(None, example="text/plain")
    parent_message_id: Optional[str] = Field(
        None, description="Message this one replies to", example="msg123456789"
    )


class ForwardMessageRequest(BaseModel):
    target_conversation_id: str = Field(..., example="chat4821")


class UpdateStatusRequest(BaseModel):
    status: str = Field(..., pattern="^(delivered|read)$", example="read")


class UpdateStatusResponse(BaseModel):
    message_id: str
    status: str
    read_by: int
    recipients: int


class AddCommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH, example="👍")


class CommentResponse(BaseModel):
    id: str
    kind: str
    message_id: str
    user_id: str
    username: str
    content: str
    timestamp: str
    replaced: bool


class DeleteCommentResponse(BaseModel):
    deleted: bool
    id: str
    kind: str
    message_id: str
