"""Audit history repository: append entries, read an entity's timeline."""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from thread_matcher.db import session_scope
from thread_matcher.db.models.audit import AuditRecord

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


class AuditEntry(BaseModel):
    """A recorded audit entry."""

    id: int
    entity_type: str
    entity_id: str
    action: str
    actor: str
    status: str
    metadata: dict[str, Any] = {}
    error: Optional[str] = None
    created_at: datetime


def _to_entry(row: AuditRecord) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        action=row.action,
        actor=row.actor,
        status=row.status,
        metadata=json.loads(row.metadata_json) if row.metadata_json else {},
        error=row.error,
        created_at=row.created_at,
    )


class AuditRepository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        status: str,
        actor: str = "system",
        metadata: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> AuditEntry:
        with session_scope(self._session_factory) as session:
            row = AuditRecord(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                actor=actor,
                status=status,
                metadata_json=json.dumps(metadata, default=str) if metadata else None,
                error=error,
            )
            session.add(row)
            session.flush()
            return _to_entry(row)

    def history(
        self,
        entity_type: str,
        entity_id: str,
        action: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEntry]:
        """Entries for one entity, newest first."""
        with session_scope(self._session_factory) as session:
            q = (
                select(AuditRecord)
                .where(AuditRecord.entity_type == entity_type)
                .where(AuditRecord.entity_id == entity_id)
            )
            if action is not None:
                q = q.where(AuditRecord.action == action)
            q = q.order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc()).limit(limit).offset(offset)
            return [_to_entry(r) for r in session.scalars(q).all()]
