"""Domain events emitted after a thread link is durably written.

Event flow: discovery/review writes the ThreadLink -> emit(ThreadLinked) ->
handlers (e.g. catch-up notification triggers) run as background tasks.

Handlers are fire-and-forget: a failing handler is logged and never rolls
back or fails the write that produced the event.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Literal, Optional, Union

from pydantic import BaseModel

from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.events")


class DomainEvent(BaseModel):
    """Base for all domain events."""

    @property
    def name(self) -> str:
        return type(self).__name__


class ThreadLinked(DomainEvent):
    """An order now has a confirmed conversation (auto-matched or manually linked)."""

    order_number: str
    conversation_id: str
    match_type: Literal["auto_matched", "manually_linked"]
    previous_conversation_id: Optional[str] = None


Handler = Callable[[Any], Union[None, Awaitable[None]]]


class DomainEventEmitter:
    """In-process event bus. One instance per application, injected where needed."""

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[Handler]] = {}
        self._pending: set[asyncio.Task] = set()

    def on(self, event_type: type[DomainEvent], handler: Handler) -> Callable[[], None]:
        """Register a handler; returns an unsubscribe function."""
        self._handlers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    async def _run_handler(self, handler: Handler, event: DomainEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("events.handler_failed", event_name=event.name, handler=getattr(handler, "__name__", repr(handler)))

    def emit(self, event: DomainEvent) -> None:
        """Schedule every handler for the event without waiting for them."""
        handlers = list(self._handlers.get(type(event), []))
        if not handlers:
            return
        logger.info("events.emit", event_name=event.name, payload=event.model_dump(), handler_count=len(handlers))
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        for handler in handlers:
            if loop is None:
                # No loop (plain sync caller): run to completion right here
                asyncio.run(self._run_handler(handler, event))
                continue
            task = loop.create_task(self._run_handler(handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for scheduled handlers (call before the event loop shuts down)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
