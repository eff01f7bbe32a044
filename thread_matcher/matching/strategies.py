"""Search strategies: ordered, pure functions from order facts to a search request.

Discovery walks DEFAULT_STRATEGIES in order and stops at the first search
that returns candidates. A strategy returns None when the order lacks the
fact it needs.
"""

from enum import Enum
from typing import Callable, Literal, Optional, Sequence

from pydantic import BaseModel

from thread_matcher.models.order import OrderFacts


class SearchMethod(str, Enum):
    EMAIL = "email"
    ORDER_NAME = "order_name"
    ORDER_NUMBER = "order_number"


class SearchRequest(BaseModel):
    """One search to run against the conversation source."""

    method: SearchMethod
    kind: Literal["contact", "query"]
    term: str


Strategy = Callable[[OrderFacts], Optional[SearchRequest]]


def by_customer_email(order: OrderFacts) -> Optional[SearchRequest]:
    if not order.customer_email:
        return None
    return SearchRequest(method=SearchMethod.EMAIL, kind="contact", term=order.customer_email.lower())


def by_order_name(order: OrderFacts) -> Optional[SearchRequest]:
    if not order.order_name:
        return None
    return SearchRequest(method=SearchMethod.ORDER_NAME, kind="query", term=order.order_name)


def by_order_number(order: OrderFacts) -> Optional[SearchRequest]:
    if not order.order_number:
        return None
    return SearchRequest(method=SearchMethod.ORDER_NUMBER, kind="query", term=order.order_number)


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (by_customer_email, by_order_name, by_order_number)


def plan_searches(
    order: OrderFacts,
    strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
) -> list[SearchRequest]:
    """Requests to try, in order. Identical (kind, term) pairs are searched once."""
    planned: list[SearchRequest] = []
    seen: set[tuple[str, str]] = set()
    for strategy in strategies:
        request = strategy(order)
        if request is None:
            continue
        key = (request.kind, request.term.lower())
        if key in seen:
            continue
        seen.add(key)
        planned.append(request)
    return planned
