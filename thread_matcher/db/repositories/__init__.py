"""DB repositories."""

from thread_matcher.db.repositories.audit_repo import AuditEntry, AuditRepository
from thread_matcher.db.repositories.thread_link_repo import ThreadLinkRepository

__all__ = [
    "AuditEntry",
    "AuditRepository",
    "ThreadLinkRepository",
]
