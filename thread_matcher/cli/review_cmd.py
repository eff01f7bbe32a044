"""Review commands: queues, approve/reject, manual link, clear, show."""

from typing import Optional

import typer

from thread_matcher.errors import ThreadMatcherError

from .shared import console, get_review_service, links_table, logger, print_link

ReviewerOption = typer.Option("user", "--by", "-b", help="Reviewer name recorded on the link and in the audit log")


def _fail(log, e: ThreadMatcherError) -> None:
    console.print(f"[red]{e}[/red]")
    log.warning("review.command_failed", error=str(e), error_type=type(e).__name__)
    raise typer.Exit(1) from e


def review_queue(limit: int = typer.Option(50, "--limit", "-l", min=1)) -> None:
    """List orders needing review (pending_review first, then not_found)."""
    service = get_review_service()
    links = service.list_needing_review(limit=limit)
    total = service.count_needing_review()
    if not links:
        console.print("[green]Nothing to review.[/green]")
        return
    console.print(links_table(links, title=f"Review queue ({len(links)} of {total})"))


def linked(limit: int = typer.Option(100, "--limit", "-l", min=1)) -> None:
    """List orders with a confirmed conversation, most recent first."""
    links = get_review_service().list_linked(limit=limit)
    if not links:
        console.print("[dim]No linked orders.[/dim]")
        return
    console.print(links_table(links, title="Linked threads"))


def approve(order_number: str = typer.Argument(...), reviewed_by: str = ReviewerOption) -> None:
    """Approve the suggested conversation for an order."""
    log = logger.bind(command="approve", order_number=order_number)
    try:
        link = get_review_service().approve(order_number, reviewed_by=reviewed_by)
    except ThreadMatcherError as e:
        _fail(log, e)
    console.print(f"[green]Approved {link.conversation_id} for order {order_number}.[/green]")


def reject(order_number: str = typer.Argument(...), reviewed_by: str = ReviewerOption) -> None:
    """Reject the suggested conversation for an order."""
    log = logger.bind(command="reject", order_number=order_number)
    try:
        get_review_service().reject(order_number, reviewed_by=reviewed_by)
    except ThreadMatcherError as e:
        _fail(log, e)
    console.print(f"[magenta]Rejected suggestion for order {order_number}.[/magenta]")


def link(
    order_number: str = typer.Argument(...),
    conversation_id: str = typer.Argument(..., help="Front conversation id (cnv_...)"),
    reviewed_by: str = ReviewerOption,
) -> None:
    """Link an order to a specific conversation."""
    log = logger.bind(command="link", order_number=order_number)
    try:
        result = get_review_service().link_different(order_number, conversation_id, reviewed_by=reviewed_by)
    except ThreadMatcherError as e:
        _fail(log, e)
    console.print(f"[green]Linked order {order_number} to {result.conversation_id}.[/green]")


def clear(order_number: str = typer.Argument(...), reviewed_by: str = ReviewerOption) -> None:
    """Reset an order's thread link so discovery can run again."""
    log = logger.bind(command="clear", order_number=order_number)
    try:
        get_review_service().clear_thread(order_number, reviewed_by=reviewed_by)
    except ThreadMatcherError as e:
        _fail(log, e)
    console.print(f"[green]Cleared thread link for order {order_number}.[/green]")


def show(
    order_number: str = typer.Argument(...),
    history: bool = typer.Option(False, "--history", help="Also print the audit trail"),
    limit: Optional[int] = typer.Option(20, "--limit", "-l", min=1),
) -> None:
    """Show an order's thread link (and optionally its audit history)."""
    service = get_review_service()
    current = service.get_by_order(order_number)
    if current is None:
        console.print(f"[red]No thread link for order {order_number}.[/red]")
        raise typer.Exit(1)
    print_link(current)
    if history:
        console.print("\n[bold]History[/bold]")
        for entry in service.history(order_number, limit=limit or 20):
            line = f"  {entry.created_at:%Y-%m-%d %H:%M:%S} {entry.action} [{entry.status}] by {entry.actor}"
            if entry.error:
                line += f" error={entry.error}"
            console.print(line)
