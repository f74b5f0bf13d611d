from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import get_current_user

from .comments import (
    add_comment as service_add_comment,
    delete_comment as service_delete_comment,
    get_comments as service_get_comments,
)
from .schemas import (
    AddCommentRequest,
    CommentResponse,
    DeleteCommentResponse,
    ForwardMessageRequest,
    SendMessageRequest,
    UpdateStatusRequest,
    UpdateStatusResponse,
)
from .service import (
    add_message as service_add_message,
    add_photo_message as service_add_photo_message,
    delete_message as service_delete_message,
    forward_message as service_forward_message,
    get_message as service_get_message,
)
from .status import update_message_status as service_update_message_status

router = APIRouter(tags=["Messages"])


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Send a message, optionally as a reply to another message in the same conversation."""
    return service_add_message(
        db,
        conversation_id=conversation_id,
        sender_id=current_user.id,
        message_type=request.type,
        content=request.content,
        content_type=request.content_type,
        parent_message_id=request.parent_message_id,
    )


@router.post("/conversations/{conversation_id}/messages/photo", status_code=status.HTTP_201_CREATED)
def send_photo_message(
    conversation_id: str,
    photo: UploadFile = File(...),
    parent_message_id: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Upload an image and post it as a photo message."""
    data = photo.file.read()
    return service_add_photo_message(
        db,
        conversation_id=conversation_id,
        sender_id=current_user.id,
        photo=data,
        mime_type=photo.content_type,
        parent_message_id=parent_message_id,
    )


@router.get("/messages/{message_id}")
def get_message(
    message_id: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_get_message(db, message_id=message_id, user_id=current_user.id)


@router.delete("/messages/{message_id}")
def delete_message(
    message_id: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Delete one of the caller's own messages."""
    return service_delete_message(db, message_id=message_id, requester_id=current_user.id)


@router.post("/messages/{message_id}/forward", status_code=status.HTTP_201_CREATED)
def forward_message(
    message_id: str,
    request: ForwardMessageRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_forward_message(
        db,
        original_message_id=message_id,
        target_conversation_id=request.target_conversation_id,
        forwarder_id=current_user.id,
    )


@router.put("/messages/{message_id}/status", response_model=UpdateStatusResponse)
def update_message_status(
    message_id: str,
    request: UpdateStatusRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_update_message_status(
        db, message_id=message_id, user_id=current_user.id, status=request.status
    )


@router.get("/messages/{message_id}/comments")
def list_comments(
    message_id: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_get_comments(db, message_id=message_id, user_id=current_user.id)


@router.post("/messages/{message_id}/comments", response_model=CommentResponse)
def add_comment(
    message_id: str,
    request: AddCommentRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """React (up to two characters, replaces the previous reaction) or comment."""
    return service_add_comment(
        db, message_id=message_id, user_id=current_user.id, content=request.content
    )


@router.delete("/messages/{message_id}/comments/{comment_id}", response_model=DeleteCommentResponse)
def delete_comment(
    message_id: str,
    comment_id: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_delete_comment(
        db, message_id=message_id, comment_id=comment_id, user_id=current_user.id
    )
