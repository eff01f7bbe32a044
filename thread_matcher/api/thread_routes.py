"""Thread API: discovery, review queue, operator actions, audit history."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from thread_matcher.api.validation import normalize_email
from thread_matcher.db.repositories.audit_repo import AuditEntry
from thread_matcher.discovery.container import Services
from thread_matcher.models.candidate import ConversationCandidate
from thread_matcher.models.discovery import DiscoveryResult
from thread_matcher.models.thread_link import ThreadLink

router = APIRouter(prefix="/threads", tags=["threads"])


def get_services(request: Request) -> Services:
    return request.app.state.services


class DiscoverBody(BaseModel):
    email: Optional[str] = None
    order_name: Optional[str] = None
    customer_name: Optional[str] = None


class ReviewBody(BaseModel):
    reviewed_by: Optional[str] = None


class LinkBody(BaseModel):
    conversation_id: str
    reviewed_by: Optional[str] = None


class ReviewQueue(BaseModel):
    total: int
    items: list[ThreadLink]


class ConversationSearchResult(BaseModel):
    email: str
    candidates: list[ConversationCandidate]


@router.get("/review")
async def review_queue(
    limit: int = Query(50, ge=1, le=500),
    services: Services = Depends(get_services),
) -> ReviewQueue:
    """Orders needing a human: pending_review first, then not_found."""
    return ReviewQueue(
        total=services.review.count_needing_review(),
        items=services.review.list_needing_review(limit=limit),
    )


@router.get("/linked")
async def linked_threads(
    limit: int = Query(100, ge=1, le=500),
    services: Services = Depends(get_services),
) -> list[ThreadLink]:
    return services.review.list_linked(limit=limit)


@router.get("/search")
async def search_conversations(
    email: str,
    limit: int = Query(25, ge=1, le=100),
    services: Services = Depends(get_services),
) -> ConversationSearchResult:
    """Contact search so an operator can pick a conversation to link."""
    normalized = normalize_email(email)
    outcome = await services.discovery.search_conversations(normalized, limit=limit)
    if outcome.failed:
        raise HTTPException(status_code=502, detail=f"Conversation search failed: {outcome.error}")
    return ConversationSearchResult(email=normalized, candidates=outcome.candidates)


@router.get("/{order_number}")
async def get_thread(order_number: str, services: Services = Depends(get_services)) -> ThreadLink:
    link = services.review.get_by_order(order_number)
    if link is None:
        raise HTTPException(status_code=404, detail=f"No thread link for order {order_number!r}")
    return link


@router.post("/{order_number}/discover")
async def discover_thread(
    order_number: str,
    body: Optional[DiscoverBody] = None,
    services: Services = Depends(get_services),
) -> DiscoveryResult:
    body = body or DiscoverBody()
    email = normalize_email(body.email) if body.email and body.email.strip() else None
    return await services.discovery.discover_thread(
        order_number,
        customer_email=email,
        order_name=body.order_name,
        customer_name=body.customer_name,
    )


@router.post("/{order_number}/approve")
async def approve_thread(
    order_number: str,
    body: Optional[ReviewBody] = None,
    services: Services = Depends(get_services),
) -> ThreadLink:
    return services.review.approve(order_number, reviewed_by=(body.reviewed_by if body else None))


@router.post("/{order_number}/reject")
async def reject_thread(
    order_number: str,
    body: Optional[ReviewBody] = None,
    services: Services = Depends(get_services),
) -> ThreadLink:
    return services.review.reject(order_number, reviewed_by=(body.reviewed_by if body else None))


@router.post("/{order_number}/link")
async def link_thread(
    order_number: str,
    body: LinkBody,
    services: Services = Depends(get_services),
) -> ThreadLink:
    return services.review.link_different(order_number, body.conversation_id, reviewed_by=body.reviewed_by)


@router.delete("/{order_number}")
async def clear_thread(
    order_number: str,
    reviewed_by: Optional[str] = None,
    services: Services = Depends(get_services),
) -> ThreadLink:
    return services.review.clear_thread(order_number, reviewed_by=reviewed_by)


@router.get("/{order_number}/history")
async def thread_history(
    order_number: str,
    limit: int = Query(50, ge=1, le=500),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    entries: list[AuditEntry] = services.review.history(order_number, limit=limit)
    return {"order_number": order_number, "entries": [e.model_dump(mode="json") for e in entries]}
