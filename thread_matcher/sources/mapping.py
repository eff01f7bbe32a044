"""Map Front conversations to conversation candidates."""

from datetime import datetime, timezone
from typing import Optional

from thread_matcher.models.candidate import ConversationCandidate
from thread_matcher.sources.front_models import FrontConversation


def _epoch_to_datetime(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _participants(conv: FrontConversation) -> list[str]:
    """Unique handles from recipient + recipients, first-seen order."""
    handles: list[str] = []
    seen: set[str] = set()
    for r in ([conv.recipient] if conv.recipient else []) + list(conv.recipients):
        handle = (r.handle or "").strip()
        if handle and handle.lower() not in seen:
            seen.add(handle.lower())
            handles.append(handle)
    return handles


def front_conversation_to_candidate(
    conv: FrontConversation,
    matched_by_query: bool = False,
) -> ConversationCandidate:
    """Convert a Front conversation to a candidate."""
    last_message_at = _epoch_to_datetime(conv.last_message.created_at) if conv.last_message else None
    return ConversationCandidate(
        conversation_id=conv.id,
        subject=conv.subject or None,
        last_message_at=last_message_at,
        participants=_participants(conv),
        matched_by_query=matched_by_query,
    )
