"""Thread link repository: single-row upserts keyed by order number, review queues."""

from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from thread_matcher.db import session_scope
from thread_matcher.db.base import utcnow
from thread_matcher.db.models.thread_link import ThreadLinkRecord
from thread_matcher.errors import ThreadLinkNotFoundError
from thread_matcher.models.thread_link import (
    LINKABLE_STATUSES,
    MatchStatus,
    ThreadLink,
    ThreadMatch,
)
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.db.thread_link_repo")

_NEEDS_REVIEW = (MatchStatus.PENDING_REVIEW.value, MatchStatus.NOT_FOUND.value)
_LINKED = (MatchStatus.AUTO_MATCHED.value, MatchStatus.MANUALLY_LINKED.value)


def _to_link(row: ThreadLinkRecord) -> ThreadLink:
    return ThreadLink.model_validate(row)


def _reset_match_fields(row: ThreadLinkRecord) -> None:
    row.conversation_id = None
    row.confidence_score = None
    row.email_matched = False
    row.order_in_subject = False
    row.order_in_body = False
    row.days_since_last_message = None
    row.matched_email = None
    row.conversation_subject = None
    row.search_method = None


class ThreadLinkRepository:
    """Persistence for thread links. Every write touches exactly one row."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _get_row(self, session: Session, order_number: str) -> Optional[ThreadLinkRecord]:
        return session.scalars(
            select(ThreadLinkRecord).where(ThreadLinkRecord.order_number == order_number)
        ).first()

    def _require_row(self, session: Session, order_number: str) -> ThreadLinkRecord:
        row = self._get_row(session, order_number)
        if row is None:
            raise ThreadLinkNotFoundError(order_number)
        return row

    def get_by_order(self, order_number: str) -> Optional[ThreadLink]:
        """Return the thread link for this order, or None."""
        with session_scope(self._session_factory) as session:
            row = self._get_row(session, order_number)
            return _to_link(row) if row is not None else None

    def _upsert_once(self, match: ThreadMatch) -> ThreadLink:
        with session_scope(self._session_factory) as session:
            row = self._get_row(session, match.order_number)
            if row is None:
                row = ThreadLinkRecord(order_number=match.order_number)
                session.add(row)
            row.match_status = match.match_status.value
            # Only linkable statuses may carry a conversation id
            row.conversation_id = match.conversation_id if match.match_status in LINKABLE_STATUSES else None
            row.confidence_score = match.confidence_score
            row.email_matched = match.email_matched
            row.order_in_subject = match.order_in_subject
            row.order_in_body = match.order_in_body
            row.days_since_last_message = match.days_since_last_message
            row.matched_email = match.matched_email
            row.conversation_subject = match.conversation_subject
            row.search_method = match.search_method
            row.reviewed_at = None
            row.reviewed_by = None
            session.flush()
            return _to_link(row)

    def upsert(self, match: ThreadMatch) -> ThreadLink:
        """Create or replace the order's thread link with a discovery outcome.

        Concurrent first writes for the same order race on the unique key; the
        loser retries once as an update (last write wins).
        """
        try:
            return self._upsert_once(match)
        except IntegrityError:
            logger.info("thread_link_repo.upsert.retry_after_race", order_number=match.order_number)
            return self._upsert_once(match)

    def update_status(
        self,
        order_number: str,
        status: MatchStatus,
        reviewed_by: Optional[str] = None,
    ) -> ThreadLink:
        """Set match status and stamp the reviewer. Raises ThreadLinkNotFoundError if no row."""
        with session_scope(self._session_factory) as session:
            row = self._require_row(session, order_number)
            row.match_status = status.value
            if status not in LINKABLE_STATUSES:
                row.conversation_id = None
            row.reviewed_at = utcnow()
            row.reviewed_by = reviewed_by
            session.flush()
            return _to_link(row)

    def link_conversation(self, order_number: str, conversation_id: str, reviewed_by: str) -> ThreadLink:
        """Manually link an order to a conversation, creating the row if needed.

        Linking to a different conversation drops the old candidate's score and
        breakdown, which described the previous conversation.
        """
        with session_scope(self._session_factory) as session:
            row = self._get_row(session, order_number)
            if row is None:
                row = ThreadLinkRecord(order_number=order_number)
                session.add(row)
                _reset_match_fields(row)
            elif row.conversation_id != conversation_id:
                _reset_match_fields(row)
            row.conversation_id = conversation_id
            row.match_status = MatchStatus.MANUALLY_LINKED.value
            row.reviewed_at = utcnow()
            row.reviewed_by = reviewed_by
            session.flush()
            return _to_link(row)

    def clear_thread(self, order_number: str) -> ThreadLink:
        """Reset every field to the unmatched default (status not_found)."""
        with session_scope(self._session_factory) as session:
            row = self._require_row(session, order_number)
            _reset_match_fields(row)
            row.match_status = MatchStatus.NOT_FOUND.value
            row.reviewed_at = None
            row.reviewed_by = None
            session.flush()
            return _to_link(row)

    def list_needing_review(self, limit: int = 50) -> list[ThreadLink]:
        """pending_review first, then not_found; higher confidence first within each."""
        status_rank = case((ThreadLinkRecord.match_status == MatchStatus.PENDING_REVIEW.value, 0), else_=1)
        with session_scope(self._session_factory) as session:
            q = (
                select(ThreadLinkRecord)
                .where(ThreadLinkRecord.match_status.in_(_NEEDS_REVIEW))
                .order_by(
                    status_rank,
                    ThreadLinkRecord.confidence_score.is_(None),
                    ThreadLinkRecord.confidence_score.desc(),
                    ThreadLinkRecord.order_number,
                )
                .limit(limit)
            )
            return [_to_link(r) for r in session.scalars(q).all()]

    def count_needing_review(self) -> int:
        with session_scope(self._session_factory) as session:
            q = select(func.count(ThreadLinkRecord.id)).where(ThreadLinkRecord.match_status.in_(_NEEDS_REVIEW))
            return int(session.scalar(q) or 0)

    def list_linked(self, limit: int = 100) -> list[ThreadLink]:
        """auto_matched and manually_linked orders with a conversation, most recently updated first."""
        with session_scope(self._session_factory) as session:
            q = (
                select(ThreadLinkRecord)
                .where(ThreadLinkRecord.match_status.in_(_LINKED))
                .where(ThreadLinkRecord.conversation_id.isnot(None))
                .order_by(ThreadLinkRecord.updated_at.desc(), ThreadLinkRecord.id.desc())
                .limit(limit)
            )
            return [_to_link(r) for r in session.scalars(q).all()]

    def list_by_conversation(self, conversation_id: str) -> list[ThreadLink]:
        """All orders currently pointing at this conversation."""
        with session_scope(self._session_factory) as session:
            q = (
                select(ThreadLinkRecord)
                .where(ThreadLinkRecord.conversation_id == conversation_id)
                .order_by(ThreadLinkRecord.order_number)
            )
            return [_to_link(r) for r in session.scalars(q).all()]
