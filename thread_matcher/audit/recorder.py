"""Audit recorder: append-only log of every search, match, and override action.

Recording is fire-and-forget from the caller's point of view: a failed audit
write is logged and never fails the action being audited.
"""

from typing import Any, Optional, Protocol

from thread_matcher.db.repositories.audit_repo import (
    STATUS_FAILED,
    STATUS_SKIPPED,
    STATUS_SUCCESS,
    AuditRepository,
)
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.audit")

ENTITY_ORDER = "order"

ACTION_THREAD_SEARCHED = "thread.searched"
ACTION_THREAD_AUTO_MATCHED = "thread.auto_matched"
ACTION_THREAD_MANUALLY_LINKED = "thread.manually_linked"
ACTION_THREAD_REJECTED = "thread.rejected"
ACTION_THREAD_NO_MATCH = "thread.no_match"
ACTION_THREAD_CLEARED = "thread.cleared"


class AuditRecorder(Protocol):
    def record_success(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        metadata: Optional[dict[str, Any]] = None,
        actor: str = "system",
    ) -> None: ...

    def record_skipped(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        reason: str,
        metadata: Optional[dict[str, Any]] = None,
        actor: str = "system",
    ) -> None: ...

    def record_failed(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        error: str,
        metadata: Optional[dict[str, Any]] = None,
        actor: str = "system",
    ) -> None: ...


class SqlAuditRecorder:
    """AuditRecorder writing to the audit_history table."""

    def __init__(self, repository: AuditRepository):
        self._repository = repository

    def _write(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        status: str,
        actor: str,
        metadata: Optional[dict[str, Any]],
        error: Optional[str] = None,
    ) -> None:
        try:
            self._repository.add(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                status=status,
                actor=actor,
                metadata=metadata,
                error=error,
            )
        except Exception as e:
            logger.error(
                "audit.write_failed",
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                error=str(e),
                error_type=type(e).__name__,
            )

    def record_success(self, entity_type, entity_id, action, metadata=None, actor="system") -> None:
        self._write(entity_type, entity_id, action, STATUS_SUCCESS, actor, metadata)

    def record_skipped(self, entity_type, entity_id, action, reason, metadata=None, actor="system") -> None:
        self._write(entity_type, entity_id, action, STATUS_SKIPPED, actor, {**(metadata or {}), "reason": reason})

    def record_failed(self, entity_type, entity_id, action, error, metadata=None, actor="system") -> None:
        self._write(entity_type, entity_id, action, STATUS_FAILED, actor, metadata, error=error)
