"""Thread link: the persisted tie between an order and a conversation."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MatchStatus(str, Enum):
    """Match status for an order's customer thread."""

    AUTO_MATCHED = "auto_matched"
    PENDING_REVIEW = "pending_review"
    MANUALLY_LINKED = "manually_linked"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"


# Statuses automatic discovery must not overwrite
CONFIRMED_STATUSES = frozenset({MatchStatus.AUTO_MATCHED, MatchStatus.MANUALLY_LINKED})
TERMINAL_STATUSES = CONFIRMED_STATUSES | {MatchStatus.REJECTED}
REDISCOVERABLE_STATUSES = frozenset({MatchStatus.PENDING_REVIEW, MatchStatus.NOT_FOUND})
# Only these may carry a conversation id
LINKABLE_STATUSES = frozenset(
    {MatchStatus.AUTO_MATCHED, MatchStatus.PENDING_REVIEW, MatchStatus.MANUALLY_LINKED}
)


class ThreadMatch(BaseModel):
    """Outcome of one discovery attempt, ready to upsert."""

    order_number: str
    conversation_id: Optional[str] = None
    match_status: MatchStatus
    confidence_score: Optional[float] = None
    email_matched: bool = False
    order_in_subject: bool = False
    order_in_body: bool = False
    days_since_last_message: Optional[int] = None
    matched_email: Optional[str] = None
    conversation_subject: Optional[str] = None
    search_method: Optional[str] = None


class ThreadLink(BaseModel):
    """A stored thread link (one per order)."""

    model_config = ConfigDict(from_attributes=True)

    order_number: str
    conversation_id: Optional[str] = None
    match_status: MatchStatus = MatchStatus.NOT_FOUND
    confidence_score: Optional[float] = None
    email_matched: bool = False
    order_in_subject: bool = False
    order_in_body: bool = False
    days_since_last_message: Optional[int] = None
    matched_email: Optional[str] = None
    conversation_subject: Optional[str] = None
    search_method: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
