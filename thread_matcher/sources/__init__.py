"""Conversation sources: Front API client and local fixture."""

from thread_matcher.sources.fixture import FixtureConversationSource
from thread_matcher.sources.front_client import FrontAPIError, FrontConversationSource
from thread_matcher.sources.front_models import FrontConversation, FrontRecipient, FrontSearchResponse
from thread_matcher.sources.mapping import front_conversation_to_candidate
from thread_matcher.sources.protocol import ConversationSource, SearchOutcome

__all__ = [
    "ConversationSource",
    "SearchOutcome",
    "FrontConversationSource",
    "FrontAPIError",
    "FixtureConversationSource",
    "FrontConversation",
    "FrontRecipient",
    "FrontSearchResponse",
    "front_conversation_to_candidate",
]
