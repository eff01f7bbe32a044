"""Pydantic models for the Front API conversation shape (subset we need)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FrontRecipient(BaseModel):
    """Front recipient (contact handle + role)."""

    model_config = ConfigDict(extra="allow")

    handle: str = ""
    role: Optional[str] = None


class FrontMessageRef(BaseModel):
    """Minimal message reference carried on a conversation (last_message)."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    created_at: Optional[float] = None  # epoch seconds


class FrontConversation(BaseModel):
    """Front conversation resource (subset)."""

    model_config = ConfigDict(extra="allow")

    id: str
    subject: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[float] = None  # epoch seconds
    recipient: Optional[FrontRecipient] = None
    recipients: list[FrontRecipient] = []
    last_message: Optional[FrontMessageRef] = None
    # Only present in local fixtures; the search API matches bodies server-side
    body: Optional[str] = None


class FrontSearchResponse(BaseModel):
    """Body of GET /conversations/search/{query}."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    results: list[FrontConversation] = Field(default_factory=list, alias="_results")
    total: Optional[int] = Field(None, alias="_total")
