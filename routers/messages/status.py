"""Message delivery/read status.

Status only moves from "delivered" to "read". In a two-person conversation a
read from the recipient settles it. With more participants each reader gets a
read record and the message turns "read" once every participant other than
the sender has one.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from core.db import atomic
from core.errors import NotFoundError, UnauthorizedError, ValidationError
from models import MESSAGE_STATUSES

from . import repository as messages_repository

logger = logging.getLogger(__name__)


def update_message_status(db: Session, *, message_id: str, user_id: str, status: str):
    if status not in MESSAGE_STATUSES:
        raise ValidationError(f"Invalid status: {status}")

    with atomic(db, operation="update message status"):
        message = messages_repository.get_message_for_update(db, message_id=message_id)
        if not message:
            raise NotFoundError("Message not found")
        if not messages_repository.is_participant(
            db, conversation_id=message.conversation_id, user_id=user_id
        ):
            raise UnauthorizedError("User is not a participant in this conversation")

        participant_count = messages_repository.count_participants(
            db, conversation_id=message.conversation_id
        )
        changes = status == "read" and user_id != message.sender_id

        if participant_count > 2:
            if changes and not messages_repository.get_read_status(
                db, message_id=message_id, user_id=user_id
            ):
                messages_repository.create_read_status(
                    db, message_id=message_id, user_id=user_id, read_at=datetime.utcnow()
                )
            recipients, read_by = messages_repository.count_read_recipients(
                db,
                message_id=message_id,
                conversation_id=message.conversation_id,
                sender_id=message.sender_id,
            )
            if message.status != "read" and recipients > 0 and read_by >= recipients:
                message.status = "read"
                logger.info(f"Message {message_id} read by all {recipients} recipients")
        else:
            recipients = max(participant_count - 1, 0)
            if changes and message.status != "read":
                message.status = "read"
                logger.info(f"Message {message_id} read by {user_id}")
            read_by = recipients if message.status == "read" else 0

        result = {
            "message_id": message.id,
            "status": message.status,
            "read_by": read_by,
            "recipients": recipients,
        }

    return result
