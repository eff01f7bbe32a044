"""Discovery commands: one order, or a CSV batch with bounded concurrency."""

import asyncio
from pathlib import Path
from typing import Optional, Union

import typer
from rich.table import Table

from thread_matcher.config import DISCOVERY_CONCURRENCY
from thread_matcher.discovery.container import build_services, create_source
from thread_matcher.models.discovery import DiscoveryResult
from thread_matcher.models.order import OrderFacts
from thread_matcher.utils.logger import log_context

from .shared import console, format_score, load_orders_csv, logger, print_discovery_result, styled, write_results_json

SourceOption = typer.Option(None, "--source", help="Conversation source: front or fixture (default: CONVERSATION_SOURCE)")


async def _discover_one(order: OrderFacts, source: Optional[str]) -> DiscoveryResult:
    services = build_services(source=create_source(source))
    try:
        return await services.discovery.discover_thread(
            order.order_number,
            customer_email=order.customer_email,
            order_name=order.order_name,
            customer_name=order.customer_name,
        )
    finally:
        await services.aclose()


async def _discover_all(
    orders: list[OrderFacts], source: Optional[str], concurrency: int
) -> list[Union[DiscoveryResult, Exception]]:
    services = build_services(source=create_source(source))
    try:
        return await services.discovery.discover_many(orders, concurrency=concurrency)
    finally:
        await services.aclose()


def discover(
    order_number: str = typer.Argument(..., help="Order number"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Customer email"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Order name"),
    customer_name: Optional[str] = typer.Option(None, "--customer", help="Customer name"),
    source: Optional[str] = SourceOption,
) -> None:
    """Discover and link the customer thread for one order."""
    log = logger.bind(order_number=order_number)
    order = OrderFacts(order_number=order_number, customer_email=email, order_name=name, customer_name=customer_name)
    with log_context(command="discover"):
        log.info("discover.start")
        result = asyncio.run(_discover_one(order, source))
        log.info("discover.complete", status=result.status)
    print_discovery_result(result)


def discover_batch(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV with order_number,email,order_name,customer_name"),
    concurrency: int = typer.Option(DISCOVERY_CONCURRENCY, "--concurrency", "-c", min=1, help="Parallel discoveries"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write results JSON here"),
    source: Optional[str] = SourceOption,
) -> None:
    """Discover threads for every order in a CSV file."""
    log = logger.bind(command="discover-batch", path=str(csv_path))
    orders = load_orders_csv(csv_path)
    if not orders:
        console.print("[red]No orders in file.[/red]")
        log.info("discover_batch.no_orders")
        raise typer.Exit(1)
    log.info("discover_batch.start", orders=len(orders), concurrency=concurrency)
    results = asyncio.run(_discover_all(orders, source, concurrency))

    table = Table(title=f"Discovery results ({len(results)} orders)")
    table.add_column("Order", style="cyan")
    table.add_column("Result")
    table.add_column("Candidates", justify="right")
    table.add_column("Top score", justify="right")
    table.add_column("Conversation")
    table.add_column("Reason", style="dim", overflow="fold")
    counts: dict[str, int] = {}
    for order, r in zip(orders, results):
        if isinstance(r, Exception):
            counts["error"] = counts.get("error", 0) + 1
            table.add_row(order.order_number or "-", "[bold red]error[/bold red]", "-", "-", "-", f"{type(r).__name__}: {r}")
            continue
        counts[r.status] = counts.get(r.status, 0) + 1
        table.add_row(
            r.order_number or "-",
            styled(r.status),
            str(r.candidates_found),
            format_score(r.top_score),
            (r.thread_link.conversation_id if r.thread_link else None) or "-",
            r.reason or "",
        )
    console.print(table)
    path = write_results_json(orders, results, output)
    console.print(f"[green]Wrote {path}[/green]")
    summary = ", ".join(f"{k}: {v}" for k, v in sorted(counts.items()))
    console.print(f"\n[bold]Processed {len(results)} orders[/bold] ({summary})")
    log.info("discover_batch.complete", processed=len(results), **counts)
    if counts.get("error"):
        raise typer.Exit(1)
