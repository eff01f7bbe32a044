"""Explicit wiring of repositories, source, audit, and services (built once at startup)."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import sessionmaker

from thread_matcher.audit.recorder import SqlAuditRecorder
from thread_matcher.config import CONVERSATION_SOURCE, FIXTURE_CONVERSATIONS_PATH
from thread_matcher.db import get_session_factory
from thread_matcher.db.repositories.audit_repo import AuditRepository
from thread_matcher.db.repositories.thread_link_repo import ThreadLinkRepository
from thread_matcher.discovery.orchestrator import ThreadDiscoveryService
from thread_matcher.discovery.review import ThreadReviewService
from thread_matcher.events import DomainEventEmitter
from thread_matcher.sources.fixture import FixtureConversationSource
from thread_matcher.sources.front_client import FrontConversationSource
from thread_matcher.sources.protocol import ConversationSource
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.container")


def create_source(kind: Optional[str] = None, fixture_path: Optional[Path] = None) -> ConversationSource:
    """Front API source by default; "fixture" reads conversations from a local JSON file."""
    kind = (kind or CONVERSATION_SOURCE).lower()
    if kind == "fixture":
        return FixtureConversationSource(fixture_path or FIXTURE_CONVERSATIONS_PATH)
    if kind == "front":
        return FrontConversationSource()
    raise ValueError(f"Unknown conversation source {kind!r} (expected 'front' or 'fixture')")


@dataclass
class Services:
    thread_links: ThreadLinkRepository
    audit_repository: AuditRepository
    source: ConversationSource
    events: DomainEventEmitter
    discovery: ThreadDiscoveryService
    review: ThreadReviewService

    async def aclose(self) -> None:
        await self.events.drain()
        close = getattr(self.source, "aclose", None)
        if close is not None:
            await close()


def build_services(
    session_factory: Optional[sessionmaker] = None,
    source: Optional[ConversationSource] = None,
    events: Optional[DomainEventEmitter] = None,
) -> Services:
    factory = session_factory or get_session_factory()
    source = source or create_source()
    events = events or DomainEventEmitter()
    thread_links = ThreadLinkRepository(factory)
    audit_repository = AuditRepository(factory)
    audit = SqlAuditRecorder(audit_repository)
    logger.debug("container.built", source=type(source).__name__)
    return Services(
        thread_links=thread_links,
        audit_repository=audit_repository,
        source=source,
        events=events,
        discovery=ThreadDiscoveryService(thread_links, source, audit, events=events),
        review=ThreadReviewService(thread_links, audit, events=events, audit_repository=audit_repository),
    )
