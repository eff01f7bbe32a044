"""Re-export all ORM models so Base.metadata has all tables."""

from thread_matcher.db.models.audit import AuditRecord
from thread_matcher.db.models.thread_link import ThreadLinkRecord

__all__ = [
    "AuditRecord",
    "ThreadLinkRecord",
]
