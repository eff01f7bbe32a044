"""HTTP API (FastAPI)."""

from thread_matcher.api.server import create_app

__all__ = ["create_app"]
