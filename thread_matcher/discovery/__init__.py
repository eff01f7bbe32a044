"""Discovery orchestration, operator review, and service wiring."""

from thread_matcher.discovery.container import Services, build_services, create_source
from thread_matcher.discovery.orchestrator import ThreadDiscoveryService
from thread_matcher.discovery.review import ThreadReviewService, validate_conversation_id

__all__ = [
    "Services",
    "build_services",
    "create_source",
    "ThreadDiscoveryService",
    "ThreadReviewService",
    "validate_conversation_id",
]
