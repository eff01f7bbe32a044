"""CLI commands: discovery, review, serve, config validation."""

from typer import Typer

from thread_matcher.cli import discover_cmd, review_cmd, serve_cmd, validate_config as validate_config_module
from thread_matcher.utils.tracing import init_tracing

init_tracing()

app = Typer(help="Customer thread discovery and matching")


def register_commands() -> None:
    """Register all CLI commands on the global app."""
    app.command()(discover_cmd.discover)
    app.command(name="discover-batch")(discover_cmd.discover_batch)
    app.command(name="review-queue")(review_cmd.review_queue)
    app.command()(review_cmd.linked)
    app.command()(review_cmd.approve)
    app.command()(review_cmd.reject)
    app.command()(review_cmd.link)
    app.command()(review_cmd.clear)
    app.command()(review_cmd.show)
    app.command()(serve_cmd.serve)
    app.command(name="validate-config")(validate_config_module.validate_config)


register_commands()
