"""Shared CLI helpers: console, logger, service construction, result formatting."""

import csv
import json
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.table import Table

from thread_matcher.audit.recorder import SqlAuditRecorder
from thread_matcher.config import OUTPUT_DIR
from thread_matcher.db import get_session_factory
from thread_matcher.db.repositories.audit_repo import AuditRepository
from thread_matcher.db.repositories.thread_link_repo import ThreadLinkRepository
from thread_matcher.discovery.review import ThreadReviewService
from thread_matcher.models.discovery import DiscoveryResult
from thread_matcher.models.order import OrderFacts
from thread_matcher.models.thread_link import ThreadLink
from thread_matcher.utils.logger import get_logger

console = Console()
logger = get_logger("thread_matcher.cli")

_STATUS_STYLE = {
    "auto_matched": "green",
    "manually_linked": "green",
    "linked": "green",
    "already_linked": "cyan",
    "pending_review": "yellow",
    "not_found": "red",
    "rejected": "magenta",
}


def get_review_service() -> ThreadReviewService:
    """Review service on the default database (no conversation source needed)."""
    factory = get_session_factory()
    audit_repository = AuditRepository(factory)
    return ThreadReviewService(
        ThreadLinkRepository(factory),
        SqlAuditRecorder(audit_repository),
        audit_repository=audit_repository,
    )


def styled(status: str) -> str:
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def format_score(score: Optional[float]) -> str:
    return "-" if score is None else f"{score:.0%}"


def links_table(links: list[ThreadLink], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Order", style="cyan")
    table.add_column("Status")
    table.add_column("Score", justify="right")
    table.add_column("Conversation")
    table.add_column("Subject", overflow="fold")
    table.add_column("Reviewed by", style="dim")
    for link in links:
        table.add_row(
            link.order_number,
            styled(link.match_status.value),
            format_score(link.confidence_score),
            link.conversation_id or "-",
            link.conversation_subject or "",
            link.reviewed_by or "",
        )
    return table


def print_link(link: ThreadLink) -> None:
    console.print(f"\n[bold]Order {link.order_number}[/bold]")
    console.print(f"  Status: {styled(link.match_status.value)}")
    console.print(f"  Conversation: {link.conversation_id or '-'}")
    if link.conversation_subject:
        console.print(f"  Subject: {link.conversation_subject}")
    console.print(f"  Confidence: {format_score(link.confidence_score)}")
    console.print(
        f"  Signals: email={link.email_matched} subject={link.order_in_subject} "
        f"body={link.order_in_body} days_since_last_message={link.days_since_last_message}"
    )
    if link.search_method:
        console.print(f"  Found via: {link.search_method}")
    if link.reviewed_by:
        console.print(f"  Reviewed by {link.reviewed_by} at {link.reviewed_at}")


def print_discovery_result(result: DiscoveryResult) -> None:
    console.print(
        f"Order {result.order_number}: {styled(result.status)} "
        f"(candidates: {result.candidates_found}, top score: {format_score(result.top_score)})"
    )
    if result.reason:
        console.print(f"  [dim]{result.reason}[/dim]")
    if result.thread_link and result.thread_link.conversation_id:
        console.print(f"  Conversation: {result.thread_link.conversation_id} {result.thread_link.conversation_subject or ''}")


def load_orders_csv(path: Path) -> list[OrderFacts]:
    """Read orders from CSV (columns: order_number, email, order_name, customer_name)."""
    with path.open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    orders = [
        OrderFacts(
            order_number=row.get("order_number") or "",
            customer_email=row.get("email") or row.get("customer_email"),
            order_name=row.get("order_name"),
            customer_name=row.get("customer_name"),
        )
        for row in rows
    ]
    logger.debug("cli.orders_loaded", path=str(path), count=len(orders))
    return orders


def batch_result_row(order: OrderFacts, result: Union[DiscoveryResult, Exception]) -> dict:
    """JSON row for one batch entry; failed orders keep their error instead of a result."""
    if isinstance(result, Exception):
        return {
            "order_number": order.order_number,
            "status": "error",
            "error": str(result),
            "error_type": type(result).__name__,
        }
    return result.model_dump(mode="json")


def write_results_json(
    orders: list[OrderFacts],
    results: list[Union[DiscoveryResult, Exception]],
    path: Optional[Path] = None,
) -> Path:
    path = path or OUTPUT_DIR / "discovery_results.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump([batch_result_row(o, r) for o, r in zip(orders, results)], f, indent=2)
    logger.info("results.write_json", path=str(path), count=len(results))
    return path
