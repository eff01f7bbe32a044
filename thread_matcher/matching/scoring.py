"""Confidence scoring for conversation candidates.

Pure and deterministic: the clock is passed in, nothing is read from the
store or the network. The four signals:

- email match: a participant handle equals the customer email (case-insensitive)
- order in subject: order number or order name appears in the subject
- order in body: a free-text search on an order identifier returned the
  conversation but the identifier is not in the subject
- recency: linear bonus for recent conversations, flat penalty for stale ones

The weighted sum is clamped to [0, 1].
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

from thread_matcher.matching.settings import ScoringWeights
from thread_matcher.models.candidate import ConversationCandidate
from thread_matcher.models.scoring import ScoringBreakdown, ScoringResult

_SECONDS_PER_DAY = 60 * 60 * 24


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _email_matched(candidate: ConversationCandidate, customer_email: Optional[str]) -> bool:
    if not customer_email:
        return False
    wanted = customer_email.strip().lower()
    return any((p or "").strip().lower() == wanted for p in candidate.participants)


def _order_in_subject(subject: Optional[str], identifiers: Sequence[str]) -> bool:
    if not subject:
        return False
    subject_lower = subject.lower()
    return any(ident.lower() in subject_lower for ident in identifiers)


def days_since(last_message_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days between the last message and now (never negative)."""
    if last_message_at is None:
        return None
    delta = (_as_utc(now) - _as_utc(last_message_at)).total_seconds()
    return max(0, int(delta // _SECONDS_PER_DAY))


def recency_adjustment(days: Optional[int], weights: ScoringWeights) -> float:
    """Bonus within recency_days, penalty past stale_after_days, else 0."""
    if days is None:
        return 0.0
    if days <= weights.recency_days:
        return weights.recency_bonus_max * (1 - days / weights.recency_days)
    if days > weights.stale_after_days:
        return -weights.stale_penalty
    return 0.0


def score_candidate(
    candidate: ConversationCandidate,
    customer_email: Optional[str],
    order_number: Optional[str],
    order_name: Optional[str] = None,
    *,
    weights: ScoringWeights | None = None,
    now: datetime | None = None,
) -> ScoringResult:
    """Score one candidate against the order's identifying facts."""
    weights = weights or ScoringWeights()
    now = now or datetime.now(timezone.utc)
    identifiers = [i.strip() for i in (order_number, order_name) if i and i.strip()]

    breakdown = ScoringBreakdown()
    score = 0.0

    if _email_matched(candidate, customer_email):
        breakdown.email_matched = True
        score += weights.email_match

    if _order_in_subject(candidate.subject, identifiers):
        breakdown.order_in_subject = True
        score += weights.order_in_subject
    elif candidate.matched_by_query and identifiers:
        breakdown.order_in_body = True
        score += weights.order_in_body

    breakdown.days_since_last_message = days_since(candidate.last_message_at, now)
    breakdown.recency_adjustment = round(recency_adjustment(breakdown.days_since_last_message, weights), 4)
    score += breakdown.recency_adjustment

    return ScoringResult(
        candidate=candidate,
        score=round(min(max(score, 0.0), 1.0), 4),
        breakdown=breakdown,
    )


def score_candidates(
    candidates: Sequence[ConversationCandidate],
    customer_email: Optional[str],
    order_number: Optional[str],
    order_name: Optional[str] = None,
    *,
    weights: ScoringWeights | None = None,
    now: datetime | None = None,
) -> list[ScoringResult]:
    """Score every candidate; best first. Equal scores keep search-result order."""
    now = now or datetime.now(timezone.utc)
    results = [
        score_candidate(c, customer_email, order_number, order_name, weights=weights, now=now)
        for c in candidates
    ]
    # sorted() is stable, so ties stay in the order the search returned them
    return sorted(results, key=lambda r: r.score, reverse=True)
