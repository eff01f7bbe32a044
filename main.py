"""Entry point: delegates to the CLI app (discover, review, serve, validate-config)."""

from rich.traceback import install

from thread_matcher.cli import app
from thread_matcher.utils.tracing import shutdown_tracing


def run() -> None:
    try:
        install(show_locals=False, max_frames=5, word_wrap=True)
        app()
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    run()
