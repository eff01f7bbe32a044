"""Caller-facing discovery result."""

from typing import Literal, Optional

from pydantic import BaseModel

from thread_matcher.models.thread_link import ThreadLink

DiscoveryStatus = Literal["linked", "pending_review", "not_found", "already_linked"]


class DiscoveryResult(BaseModel):
    """Result of one discover_thread call."""

    order_number: str
    status: DiscoveryStatus
    thread_link: Optional[ThreadLink] = None
    candidates_found: int = 0
    top_score: Optional[float] = None
    reason: Optional[str] = None  # operator-facing explanation when nothing was linked
    search_method: Optional[str] = None
