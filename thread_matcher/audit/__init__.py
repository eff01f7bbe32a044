"""Audit recording."""

from thread_matcher.audit.recorder import (
    ACTION_THREAD_AUTO_MATCHED,
    ACTION_THREAD_CLEARED,
    ACTION_THREAD_MANUALLY_LINKED,
    ACTION_THREAD_NO_MATCH,
    ACTION_THREAD_REJECTED,
    ACTION_THREAD_SEARCHED,
    ENTITY_ORDER,
    AuditRecorder,
    SqlAuditRecorder,
)

__all__ = [
    "AuditRecorder",
    "SqlAuditRecorder",
    "ENTITY_ORDER",
    "ACTION_THREAD_SEARCHED",
    "ACTION_THREAD_AUTO_MATCHED",
    "ACTION_THREAD_MANUALLY_LINKED",
    "ACTION_THREAD_REJECTED",
    "ACTION_THREAD_NO_MATCH",
    "ACTION_THREAD_CLEARED",
]
