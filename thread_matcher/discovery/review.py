"""Operator review actions on thread links: approve, reject, relink, clear."""

import re
from typing import Optional

from thread_matcher.audit.recorder import (
    ACTION_THREAD_CLEARED,
    ACTION_THREAD_MANUALLY_LINKED,
    ACTION_THREAD_REJECTED,
    ENTITY_ORDER,
    AuditRecorder,
)
from thread_matcher.db.repositories.audit_repo import AuditEntry, AuditRepository
from thread_matcher.db.repositories.thread_link_repo import ThreadLinkRepository
from thread_matcher.errors import (
    InvalidConversationIdError,
    InvalidTransitionError,
    ThreadLinkNotFoundError,
)
from thread_matcher.events import DomainEventEmitter, ThreadLinked
from thread_matcher.models.thread_link import MatchStatus, ThreadLink
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.review")

CONVERSATION_ID_PATTERN = re.compile(r"^cnv_[A-Za-z0-9]+$")

_APPROVABLE = frozenset({MatchStatus.PENDING_REVIEW, MatchStatus.AUTO_MATCHED})
_REJECTABLE = frozenset({MatchStatus.PENDING_REVIEW, MatchStatus.AUTO_MATCHED})


def validate_conversation_id(conversation_id: str) -> str:
    """Return the stripped id, or raise InvalidConversationIdError."""
    value = (conversation_id or "").strip()
    if not CONVERSATION_ID_PATTERN.match(value):
        raise InvalidConversationIdError(conversation_id)
    return value


def _reviewer(reviewed_by: Optional[str]) -> str:
    return (reviewed_by or "").strip() or "user"


class ThreadReviewService:
    """Human-in-the-loop actions. Every action is audited under the reviewer's name."""

    def __init__(
        self,
        repository: ThreadLinkRepository,
        audit: AuditRecorder,
        events: Optional[DomainEventEmitter] = None,
        audit_repository: Optional[AuditRepository] = None,
    ):
        self._repository = repository
        self._audit = audit
        self._events = events or DomainEventEmitter()
        self._audit_repository = audit_repository

    def _require(self, order_number: str) -> ThreadLink:
        link = self._repository.get_by_order(order_number)
        if link is None:
            raise ThreadLinkNotFoundError(order_number)
        return link

    def get_by_order(self, order_number: str) -> Optional[ThreadLink]:
        return self._repository.get_by_order(order_number)

    def list_needing_review(self, limit: int = 50) -> list[ThreadLink]:
        return self._repository.list_needing_review(limit=limit)

    def count_needing_review(self) -> int:
        return self._repository.count_needing_review()

    def list_linked(self, limit: int = 100) -> list[ThreadLink]:
        return self._repository.list_linked(limit=limit)

    def history(self, order_number: str, limit: int = 50) -> list[AuditEntry]:
        """Audit trail for the order, newest first (empty when no audit repository is wired)."""
        if self._audit_repository is None:
            return []
        return self._audit_repository.history(ENTITY_ORDER, order_number, limit=limit)

    def approve(self, order_number: str, reviewed_by: Optional[str] = None) -> ThreadLink:
        """Confirm the suggested conversation: pending_review/auto_matched -> manually_linked."""
        reviewer = _reviewer(reviewed_by)
        current = self._require(order_number)
        if current.match_status not in _APPROVABLE or not current.conversation_id:
            raise InvalidTransitionError(order_number, current.match_status.value, "approve")

        link = self._repository.update_status(order_number, MatchStatus.MANUALLY_LINKED, reviewed_by=reviewer)
        logger.info("review.approved", order_number=order_number, conversation_id=link.conversation_id, reviewed_by=reviewer)
        self._audit.record_success(
            ENTITY_ORDER,
            order_number,
            ACTION_THREAD_MANUALLY_LINKED,
            metadata={
                "conversationId": link.conversation_id,
                "previousStatus": current.match_status.value,
                "via": "approve",
            },
            actor=reviewer,
        )
        self._events.emit(
            ThreadLinked(
                order_number=order_number,
                conversation_id=link.conversation_id,
                match_type="manually_linked",
            )
        )
        return link

    def reject(self, order_number: str, reviewed_by: Optional[str] = None) -> ThreadLink:
        """Reject the suggested conversation. The order stays out of automatic discovery."""
        reviewer = _reviewer(reviewed_by)
        current = self._require(order_number)
        if current.match_status not in _REJECTABLE:
            raise InvalidTransitionError(order_number, current.match_status.value, "reject")

        link = self._repository.update_status(order_number, MatchStatus.REJECTED, reviewed_by=reviewer)
        logger.info("review.rejected", order_number=order_number, rejected_conversation_id=current.conversation_id, reviewed_by=reviewer)
        self._audit.record_success(
            ENTITY_ORDER,
            order_number,
            ACTION_THREAD_REJECTED,
            metadata={
                "rejectedConversationId": current.conversation_id,
                "previousStatus": current.match_status.value,
                "score": current.confidence_score,
            },
            actor=reviewer,
        )
        return link

    def link_different(self, order_number: str, new_conversation_id: str, reviewed_by: Optional[str] = None) -> ThreadLink:
        """Link the order to an operator-chosen conversation (valid from any state)."""
        conversation_id = validate_conversation_id(new_conversation_id)
        reviewer = _reviewer(reviewed_by)
        previous = self._repository.get_by_order(order_number)
        previous_id = previous.conversation_id if previous else None
        # Orders can share a conversation (e.g. a reorder); surfaced, not blocked
        shared_with = [
            other.order_number
            for other in self._repository.list_by_conversation(conversation_id)
            if other.order_number != order_number
        ]
        if shared_with:
            logger.warning(
                "review.conversation_shared",
                order_number=order_number,
                conversation_id=conversation_id,
                shared_with=shared_with,
            )

        link = self._repository.link_conversation(order_number, conversation_id, reviewed_by=reviewer)
        logger.info(
            "review.linked",
            order_number=order_number,
            conversation_id=conversation_id,
            previous_conversation_id=previous_id,
            reviewed_by=reviewer,
        )
        self._audit.record_success(
            ENTITY_ORDER,
            order_number,
            ACTION_THREAD_MANUALLY_LINKED,
            metadata={
                "conversationId": conversation_id,
                "previousConversationId": previous_id,
                "previousStatus": previous.match_status.value if previous else None,
                "sharedWithOrders": shared_with,
                "via": "link",
            },
            actor=reviewer,
        )
        self._events.emit(
            ThreadLinked(
                order_number=order_number,
                conversation_id=conversation_id,
                match_type="manually_linked",
                previous_conversation_id=previous_id,
            )
        )
        return link

    def clear_thread(self, order_number: str, reviewed_by: Optional[str] = None) -> ThreadLink:
        """Drop the order's link so the next discovery starts fresh."""
        reviewer = _reviewer(reviewed_by)
        previous = self._require(order_number)
        link = self._repository.clear_thread(order_number)
        logger.info("review.cleared", order_number=order_number, previous_status=previous.match_status.value, reviewed_by=reviewer)
        self._audit.record_success(
            ENTITY_ORDER,
            order_number,
            ACTION_THREAD_CLEARED,
            metadata={
                "previousConversationId": previous.conversation_id,
                "previousStatus": previous.match_status.value,
            },
            actor=reviewer,
        )
        return link
