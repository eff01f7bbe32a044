"""Conversation candidates returned by a search (never persisted)."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ConversationCandidate(BaseModel):
    """A conversation a search returned, normalized across sources."""

    conversation_id: str
    subject: Optional[str] = None
    last_message_at: Optional[datetime] = None  # timezone-aware UTC
    participants: list[str] = []  # contact handles (email addresses)
    matched_by_query: bool = False  # came from a free-text search
