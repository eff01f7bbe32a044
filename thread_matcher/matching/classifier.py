"""Map a confidence score to a match status."""

from thread_matcher.matching.settings import MatchThresholds
from thread_matcher.models.discovery import DiscoveryStatus
from thread_matcher.models.thread_link import MatchStatus

_CONFIDENCE_RANK = {
    MatchStatus.NOT_FOUND: 0,
    MatchStatus.PENDING_REVIEW: 1,
    MatchStatus.AUTO_MATCHED: 2,
}


def classify(score: float, thresholds: MatchThresholds | None = None) -> MatchStatus:
    """auto_matched at or above auto_match, pending_review at or above review, else not_found."""
    thresholds = thresholds or MatchThresholds()
    if score >= thresholds.auto_match:
        return MatchStatus.AUTO_MATCHED
    if score >= thresholds.review:
        return MatchStatus.PENDING_REVIEW
    return MatchStatus.NOT_FOUND


def confidence_rank(status: MatchStatus) -> int:
    """Order of classifier outcomes: not_found < pending_review < auto_matched."""
    if status not in _CONFIDENCE_RANK:
        raise ValueError(f"{status.value!r} is not a classifier outcome")
    return _CONFIDENCE_RANK[status]


def to_discovery_status(status: MatchStatus) -> DiscoveryStatus:
    """Caller-facing status for a freshly classified match."""
    if status == MatchStatus.AUTO_MATCHED:
        return "linked"
    if status == MatchStatus.PENDING_REVIEW:
        return "pending_review"
    return "not_found"
