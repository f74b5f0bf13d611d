from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from core.config import CONVERSATION_MESSAGES_PAGE_LIMIT
from core.db import get_db
from routers.dependencies import get_current_user

from .schemas import (
    ConversationListResponse,
    StartConversationRequest,
    StartConversationResponse,
)
from .service import (
    get_conversation_details as service_get_conversation_details,
    get_messages as service_get_messages,
    get_user_conversations as service_get_user_conversations,
    start_conversation as service_start_conversation,
)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


@router.get("", response_model=ConversationListResponse)
def list_conversations(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """List the caller's conversations, most recently active first."""
    return service_get_user_conversations(db, user_id=current_user.id)


@router.post("", response_model=StartConversationResponse)
def start_conversation(
    request: StartConversationRequest,
    response: Response,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Start a direct or group conversation. Direct chats are reused per pair."""
    result = service_start_conversation(
        db,
        initiator_id=current_user.id,
        recipient_ids=request.recipient_ids,
        title=request.title,
        is_group=request.is_group,
    )
    response.status_code = status.HTTP_201_CREATED if result["created"] else status.HTTP_200_OK
    return result


@router.get("/{conversation_id}")
def get_conversation(
    conversation_id: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Conversation metadata, participants and every message with its reactions and comments."""
    return service_get_conversation_details(
        db, conversation_id=conversation_id, user_id=current_user.id
    )


@router.get("/{conversation_id}/messages")
def list_messages(
    conversation_id: str,
    limit: int = Query(default=CONVERSATION_MESSAGES_PAGE_LIMIT, ge=1, le=CONVERSATION_MESSAGES_PAGE_LIMIT),
    before: Optional[str] = Query(default=None, description="Message id to page backwards from"),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return service_get_messages(
        db,
        conversation_id=conversation_id,
        user_id=current_user.id,
        limit=limit,
        before=before,
    )
