"""Pydantic models for thread matching."""

from thread_matcher.models.candidate import ConversationCandidate
from thread_matcher.models.discovery import DiscoveryResult, DiscoveryStatus
from thread_matcher.models.order import OrderFacts
from thread_matcher.models.scoring import ScoringBreakdown, ScoringResult
from thread_matcher.models.thread_link import (
    CONFIRMED_STATUSES,
    LINKABLE_STATUSES,
    REDISCOVERABLE_STATUSES,
    TERMINAL_STATUSES,
    MatchStatus,
    ThreadLink,
    ThreadMatch,
)

__all__ = [
    "OrderFacts",
    "ConversationCandidate",
    "ScoringBreakdown",
    "ScoringResult",
    "MatchStatus",
    "ThreadLink",
    "ThreadMatch",
    "CONFIRMED_STATUSES",
    "TERMINAL_STATUSES",
    "REDISCOVERABLE_STATUSES",
    "LINKABLE_STATUSES",
    "DiscoveryResult",
    "DiscoveryStatus",
]
