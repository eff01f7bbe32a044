"""Fixture conversation source: reads Front-shaped conversations from a JSON file."""

import json
from pathlib import Path

from pydantic import ValidationError

from thread_matcher.sources.front_models import FrontConversation
from thread_matcher.sources.mapping import front_conversation_to_candidate
from thread_matcher.sources.protocol import SearchOutcome
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.sources.fixture")


class FixtureConversationSource:
    """Local stand-in for Front: contact search matches participant handles,
    free-text search matches subject or body (case-insensitive substring).
    """

    def __init__(self, conversations_path: Path):
        self._path = conversations_path
        self._conversations: list[FrontConversation] = []
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            self._conversations = []
            logger.warning("fixture_source.file_missing", path=str(self._path))
            return
        with self._path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        items = data if isinstance(data, list) else data.get("_results", data.get("conversations", []))
        self._conversations = []
        for item in items:
            try:
                self._conversations.append(FrontConversation.model_validate(item))
            except ValidationError as e:
                logger.warning("fixture_source.invalid_conversation", error=str(e))
        logger.info("fixture_source.loaded", count=len(self._conversations), path=str(self._path))

    async def search_by_contact(self, handle: str, limit: int = 25) -> SearchOutcome:
        wanted = (handle or "").strip().lower()
        if not wanted:
            return SearchOutcome.ok([])
        matches = []
        for conv in self._conversations:
            candidate = front_conversation_to_candidate(conv)
            if any(p.lower() == wanted for p in candidate.participants):
                matches.append(candidate)
        logger.debug("fixture_source.search_by_contact", handle=wanted, count=len(matches))
        return SearchOutcome.ok(matches[:limit])

    async def search_by_query(self, query: str, limit: int = 25) -> SearchOutcome:
        term = (query or "").strip().lower()
        if not term:
            return SearchOutcome.ok([])
        matches = [
            front_conversation_to_candidate(conv, matched_by_query=True)
            for conv in self._conversations
            if term in (conv.subject or "").lower() or term in (conv.body or "").lower()
        ]
        logger.debug("fixture_source.search_by_query", query=term, count=len(matches))
        return SearchOutcome.ok(matches[:limit])
