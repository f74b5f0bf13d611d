from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from core.db import Base

MESSAGE_TYPES = ("text", "photo")
MESSAGE_STATUSES = ("delivered", "read")

# =================================
#  Users Table
# =================================
class User(Base):
    __tablename__ = "users"

    id = Column(String(12), primary_key=True)
    name = Column(String(16), unique=True, index=True, nullable=False)
    photo_id = Column(String, ForeignKey("media_files.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    conversation_links = relationship("ConversationParticipant", back_populates="user")


# =================================
#  Conversations Table
# =================================
class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=True)
    is_group = Column(Boolean, nullable=False, default=False)
    photo_id = Column(String, ForeignKey("media_files.id"), nullable=True)
    # "<low user id>:<high user id>" for direct conversations, NULL for groups
    direct_key = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    participants = relationship("ConversationParticipant", back_populates="conversation")
    messages = relationship("Message", back_populates="conversation")


# =================================
#  Conversation Participants Table
# =================================
class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    conversation_id = Column(String, ForeignKey("conversations.id"), primary_key=True)
    user_id = Column(String(12), ForeignKey("users.id"), primary_key=True, index=True)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User", back_populates="conversation_links")


# =================================
#  Groups Tables (mirror of group conversations)
# =================================
class Group(Base):
    __tablename__ = "groups"

    id = Column(String, ForeignKey("conversations.id"), primary_key=True)
    name = Column(String(30), nullable=False)
    photo_id = Column(String, ForeignKey("media_files.id"), nullable=True)


class GroupMember(Base):
    __tablename__ = "group_members"

    group_id = Column(String, ForeignKey("groups.id"), primary_key=True)
    user_id = Column(String(12), ForeignKey("users.id"), primary_key=True, index=True)


# =================================
#  Messages Table
# =================================
class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False, index=True)
    sender_id = Column(String(12), ForeignKey("users.id"), nullable=False)
    type = Column(String, nullable=False, default="text")  # "text", "photo"
    content = Column(Text, nullable=False)
    content_type = Column(String, nullable=False, default="text/plain")
    # Validated on insert only; deleting the parent leaves the reference dangling
    parent_message_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default="delivered")  # "delivered", "read"
    is_forwarded = Column(Boolean, nullable=False, default=False)
    original_sender_id = Column(String(12), ForeignKey("users.id"), nullable=True)
    original_timestamp = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id])
    original_sender = relationship("User", foreign_keys=[original_sender_id])

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )


# =================================
#  Message Read Status Table
# =================================
class MessageReadStatus(Base):
    __tablename__ = "message_read_status"

    message_id = Column(String, ForeignKey("messages.id"), primary_key=True)
    user_id = Column(String(12), ForeignKey("users.id"), primary_key=True)
    status = Column(String, nullable=False, default="read")
    read_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# =================================
#  Reactions / Comments Tables
# =================================
class Reaction(Base):
    __tablename__ = "message_reactions"

    id = Column(String, primary_key=True)
    message_id = Column(String, ForeignKey("messages.id"), nullable=False, index=True)
    user_id = Column(String(12), ForeignKey("users.id"), nullable=False)
    content = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_reactions_message_user"),
    )


class Comment(Base):
    __tablename__ = "message_comments"

    id = Column(String, primary_key=True)
    message_id = Column(String, ForeignKey("messages.id"), nullable=False, index=True)
    user_id = Column(String(12), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")


# =================================
#  Media Files Table
# =================================
class MediaFile(Base):
    __tablename__ = "media_files"

    id = Column(String, primary_key=True)
    file_data = Column(LargeBinary, nullable=False)
    mime_type = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
