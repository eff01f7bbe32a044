"""Scoring breakdown and result models."""

from typing import Optional

from pydantic import BaseModel

from thread_matcher.models.candidate import ConversationCandidate


class ScoringBreakdown(BaseModel):
    """Which signals contributed to a candidate's score."""

    email_matched: bool = False
    order_in_subject: bool = False
    order_in_body: bool = False
    days_since_last_message: Optional[int] = None
    recency_adjustment: float = 0.0  # bonus (>0) or stale penalty (<0) actually applied


class ScoringResult(BaseModel):
    """One scored candidate."""

    candidate: ConversationCandidate
    score: float
    breakdown: ScoringBreakdown

    @property
    def conversation_id(self) -> str:
        return self.candidate.conversation_id
