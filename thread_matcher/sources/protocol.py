"""Conversation source protocol and the search result type."""

from typing import Optional, Protocol

from pydantic import BaseModel

from thread_matcher.models.candidate import ConversationCandidate


class SearchOutcome(BaseModel):
    """Result of one search call: candidates, or the reason the search failed.

    A failed search has no candidates; callers treat it like an empty result
    but can log and audit it differently.
    """

    candidates: list[ConversationCandidate] = []
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, candidates: list[ConversationCandidate]) -> "SearchOutcome":
        return cls(candidates=candidates)

    @classmethod
    def failure(cls, error: str) -> "SearchOutcome":
        return cls(candidates=[], error=error)


class ConversationSource(Protocol):
    """Read-only search interface over the communication system."""

    async def search_by_contact(self, handle: str, limit: int = 25) -> SearchOutcome:
        """Conversations involving the contact handle (email address)."""
        ...

    async def search_by_query(self, query: str, limit: int = 25) -> SearchOutcome:
        """Conversations matching a free-text query (order name/number)."""
        ...
