"""Thread discovery: find, score, classify, and persist an order's customer conversation.

Flow for one order:
  existing link? -> confirmed/rejected: already_linked, no search
  plan searches (email -> order name -> order number), stop at first with candidates
  no candidates -> not_found row (existing row kept if any search failed)
  score all candidates, classify the best, upsert the link
  auto_matched -> audit + ThreadLinked event
"""

import asyncio
from datetime import datetime, timezone
from time import perf_counter
from typing import Callable, Iterable, Optional, Sequence, Union

from opentelemetry.trace import Status, StatusCode

from thread_matcher.audit.recorder import (
    ACTION_THREAD_AUTO_MATCHED,
    ACTION_THREAD_NO_MATCH,
    ACTION_THREAD_SEARCHED,
    ENTITY_ORDER,
    AuditRecorder,
)
from thread_matcher.config import SEARCH_RESULT_LIMIT, SEARCH_TIMEOUT_SECONDS
from thread_matcher.db.repositories.thread_link_repo import ThreadLinkRepository
from thread_matcher.events import DomainEventEmitter, ThreadLinked
from thread_matcher.matching.classifier import classify, to_discovery_status
from thread_matcher.matching.scoring import score_candidates
from thread_matcher.matching.settings import MatchingConfig, get_matching_config
from thread_matcher.matching.strategies import DEFAULT_STRATEGIES, SearchRequest, Strategy, plan_searches
from thread_matcher.models.discovery import DiscoveryResult
from thread_matcher.models.order import OrderFacts
from thread_matcher.models.scoring import ScoringResult
from thread_matcher.models.thread_link import (
    LINKABLE_STATUSES,
    REDISCOVERABLE_STATUSES,
    TERMINAL_STATUSES,
    MatchStatus,
    ThreadMatch,
)
from thread_matcher.sources.protocol import ConversationSource, SearchOutcome
from thread_matcher.utils.logger import get_logger, log_context
from thread_matcher.utils.tracing import get_tracer

logger = get_logger("thread_matcher.discovery")

SKIP_REASON_NO_FACTS = "No customer email, order name, or order number available to search with"
SKIP_REASON_NO_ORDER_NUMBER = "Order number is required to record a thread link"


class _SearchAttempt:
    """One executed search and its outcome (kept for audit and the result reason)."""

    def __init__(self, request: SearchRequest, outcome: SearchOutcome):
        self.request = request
        self.outcome = outcome


def _no_candidates_reason(order: OrderFacts, attempts: Sequence[_SearchAttempt]) -> str:
    failed = [a for a in attempts if a.outcome.failed]
    if attempts and len(failed) == len(attempts):
        return f"Conversation search failed: {failed[-1].outcome.error}"
    target = order.customer_email or order.order_name or order.order_number
    reason = f"No conversations found for {target}"
    if failed:
        reason += f" ({len(failed)} of {len(attempts)} searches failed)"
    return reason


class ThreadDiscoveryService:
    """Discovers and links customer conversations to orders.

    Collaborators are injected: the link repository, the conversation source,
    the audit recorder, and the event emitter. Matching config is read through
    config_provider on every call so a reloaded YAML takes effect immediately.
    """

    def __init__(
        self,
        repository: ThreadLinkRepository,
        source: ConversationSource,
        audit: AuditRecorder,
        events: Optional[DomainEventEmitter] = None,
        config_provider: Callable[[], MatchingConfig] = get_matching_config,
        strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
        search_limit: int = SEARCH_RESULT_LIMIT,
        search_timeout_seconds: float = SEARCH_TIMEOUT_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._repository = repository
        self._source = source
        self._audit = audit
        self._events = events or DomainEventEmitter()
        self._config_provider = config_provider
        self._strategies = tuple(strategies)
        self._search_limit = search_limit
        # Outer bound on a search call, on top of the source's own HTTP timeout
        self._search_timeout = search_timeout_seconds * 2
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _run_search(self, request: SearchRequest) -> SearchOutcome:
        if request.kind == "contact":
            call = self._source.search_by_contact(request.term, limit=self._search_limit)
        else:
            call = self._source.search_by_query(request.term, limit=self._search_limit)
        try:
            return await asyncio.wait_for(call, timeout=self._search_timeout)
        except asyncio.TimeoutError:
            return SearchOutcome.failure(f"search timed out after {self._search_timeout:.0f}s")
        except Exception as e:
            # Sources are injected; one that raises still only costs this search
            logger.warning(
                "discovery.search.source_raised",
                method=request.method.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SearchOutcome.failure(str(e).strip() or repr(e))

    async def _search(self, order: OrderFacts) -> tuple[list[_SearchAttempt], Optional[_SearchAttempt]]:
        """Run planned searches in order; return all attempts and the first with candidates."""
        tracer = get_tracer()
        attempts: list[_SearchAttempt] = []
        for request in plan_searches(order, self._strategies):
            with tracer.start_as_current_span(
                "search_conversations",
                attributes={"search.method": request.method.value, "search.kind": request.kind},
            ) as span:
                outcome = await self._run_search(request)
                span.set_attribute("search.candidates", len(outcome.candidates))
                if outcome.failed:
                    span.set_status(Status(StatusCode.ERROR, outcome.error or ""))
            attempt = _SearchAttempt(request, outcome)
            attempts.append(attempt)
            metadata = {
                "method": request.method.value,
                "term": request.term,
                "candidatesFound": len(outcome.candidates),
            }
            if outcome.failed:
                logger.warning(
                    "discovery.search.failed",
                    method=request.method.value,
                    term=request.term,
                    error=outcome.error,
                )
                self._audit.record_failed(
                    ENTITY_ORDER, order.order_number, ACTION_THREAD_SEARCHED, error=outcome.error or "", metadata=metadata
                )
                continue
            logger.info(
                "discovery.search.complete",
                method=request.method.value,
                term=request.term,
                candidates=len(outcome.candidates),
            )
            self._audit.record_success(ENTITY_ORDER, order.order_number, ACTION_THREAD_SEARCHED, metadata=metadata)
            if outcome.candidates:
                return attempts, attempt
        return attempts, None

    def _persist_not_found(self, order: OrderFacts, attempts: Sequence[_SearchAttempt]) -> DiscoveryResult:
        link = self._repository.upsert(
            ThreadMatch(
                order_number=order.order_number,
                match_status=MatchStatus.NOT_FOUND,
                matched_email=order.customer_email,
            )
        )
        self._audit.record_success(
            ENTITY_ORDER,
            order.order_number,
            ACTION_THREAD_NO_MATCH,
            metadata={
                "email": order.customer_email,
                "searches": [a.request.method.value for a in attempts],
                "failedSearches": sum(1 for a in attempts if a.outcome.failed),
            },
        )
        return DiscoveryResult(
            order_number=order.order_number,
            status="not_found",
            thread_link=link,
            candidates_found=0,
            top_score=None,
            reason=_no_candidates_reason(order, attempts),
        )

    def _persist_match(self, order: OrderFacts, winner: _SearchAttempt, top: ScoringResult, status: MatchStatus):
        linkable = status in LINKABLE_STATUSES
        return self._repository.upsert(
            ThreadMatch(
                order_number=order.order_number,
                conversation_id=top.conversation_id if linkable else None,
                match_status=status,
                confidence_score=top.score,
                email_matched=top.breakdown.email_matched,
                order_in_subject=top.breakdown.order_in_subject,
                order_in_body=top.breakdown.order_in_body,
                days_since_last_message=top.breakdown.days_since_last_message,
                matched_email=order.customer_email,
                conversation_subject=top.candidate.subject if linkable else None,
                search_method=winner.request.method.value,
            )
        )

    async def discover_thread(
        self,
        order_number: str,
        customer_email: Optional[str] = None,
        order_name: Optional[str] = None,
        customer_name: Optional[str] = None,
    ) -> DiscoveryResult:
        """Discover and link a customer thread for an order.

        Idempotent for confirmed links: auto_matched, manually_linked, and
        rejected orders return already_linked without searching. Search
        failures degrade to "no candidates"; persistence failures propagate.
        """
        order = OrderFacts(
            order_number=order_number,
            order_name=order_name,
            customer_email=customer_email,
            customer_name=customer_name,
        )
        tracer = get_tracer()
        start = perf_counter()
        with log_context(order_number=order.order_number), tracer.start_as_current_span(
            "discover_thread",
            attributes={"order.number": order.order_number},
        ) as root_span:
            log = logger.bind(has_email=bool(order.customer_email), has_name=bool(order.order_name))
            log.info("discovery.start")
            try:
                result = await self._discover(order, log)
                root_span.set_attribute("discovery.status", result.status)
                root_span.set_attribute("discovery.candidates", result.candidates_found)
                log.info(
                    "discovery.complete",
                    status=result.status,
                    candidates=result.candidates_found,
                    top_score=result.top_score,
                    duration_ms=round((perf_counter() - start) * 1000, 2),
                )
                return result
            except Exception as e:
                root_span.set_status(Status(StatusCode.ERROR, str(e)))
                root_span.record_exception(e)
                log.exception("discovery.failed")
                raise

    async def _discover(self, order: OrderFacts, log) -> DiscoveryResult:
        if not order.has_identifiers or not order.order_number:
            reason = SKIP_REASON_NO_FACTS if not order.has_identifiers else SKIP_REASON_NO_ORDER_NUMBER
            log.info("discovery.skipped", reason=reason)
            self._audit.record_skipped(ENTITY_ORDER, order.order_number or "unknown", ACTION_THREAD_SEARCHED, reason=reason)
            return DiscoveryResult(order_number=order.order_number, status="not_found", reason=reason)

        existing = self._repository.get_by_order(order.order_number)
        if existing is not None and existing.match_status in TERMINAL_STATUSES:
            log.info("discovery.already_linked", match_status=existing.match_status.value)
            return DiscoveryResult(
                order_number=order.order_number,
                status="already_linked",
                thread_link=existing,
                candidates_found=0,
                top_score=existing.confidence_score,
                search_method=existing.search_method,
            )
        if existing is not None:
            log.debug("discovery.rediscover", previous_status=existing.match_status.value)

        attempts, winner = await self._search(order)
        if winner is None:
            search_failed = any(a.outcome.failed for a in attempts)
            if search_failed and existing is not None and existing.match_status in REDISCOVERABLE_STATUSES:
                # Incomplete evidence: the previous suggestion stays until a clean search replaces it
                log.info("discovery.kept_existing", match_status=existing.match_status.value)
                return DiscoveryResult(
                    order_number=order.order_number,
                    status="not_found",
                    thread_link=existing,
                    candidates_found=0,
                    top_score=None,
                    reason=_no_candidates_reason(order, attempts),
                )
            return self._persist_not_found(order, attempts)

        config = self._config_provider()
        with get_tracer().start_as_current_span("score_candidates") as span:
            scored = score_candidates(
                winner.outcome.candidates,
                order.customer_email,
                order.order_number,
                order.order_name,
                weights=config.weights,
                now=self._clock(),
            )
            top = scored[0]
            status = classify(top.score, config.thresholds)
            span.set_attribute("scoring.top_score", top.score)
            span.set_attribute("scoring.status", status.value)

        link = self._persist_match(order, winner, top, status)

        if status == MatchStatus.AUTO_MATCHED:
            self._audit.record_success(
                ENTITY_ORDER,
                order.order_number,
                ACTION_THREAD_AUTO_MATCHED,
                metadata={
                    "conversationId": top.conversation_id,
                    "score": top.score,
                    "breakdown": top.breakdown.model_dump(),
                    "searchMethod": winner.request.method.value,
                },
            )
            self._events.emit(
                ThreadLinked(
                    order_number=order.order_number,
                    conversation_id=top.conversation_id,
                    match_type="auto_matched",
                )
            )

        reason = None
        if status == MatchStatus.NOT_FOUND:
            reason = (
                f"{len(scored)} conversation(s) found but confidence too low "
                f"({round(top.score * 100)}%)"
            )
        return DiscoveryResult(
            order_number=order.order_number,
            status=to_discovery_status(status),
            thread_link=link,
            candidates_found=len(scored),
            top_score=top.score,
            reason=reason,
            search_method=winner.request.method.value,
        )

    async def discover_many(
        self, orders: Iterable[OrderFacts], concurrency: int = 4
    ) -> list[Union[DiscoveryResult, Exception]]:
        """Discover threads for several orders concurrently (bounded).

        Results follow input order. An order whose discovery raised (e.g. a
        store write failure) gets its exception in place of a result; the
        other orders still complete and stay persisted.
        """
        orders = list(orders)
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def _one(order: OrderFacts) -> DiscoveryResult:
            async with semaphore:
                return await self.discover_thread(
                    order.order_number,
                    customer_email=order.customer_email,
                    order_name=order.order_name,
                    customer_name=order.customer_name,
                )

        results = await asyncio.gather(*(_one(o) for o in orders), return_exceptions=True)
        for order, result in zip(orders, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                logger.error(
                    "discovery.batch.order_failed",
                    order_number=order.order_number,
                    error=str(result),
                    error_type=type(result).__name__,
                )
        return list(results)

    async def search_conversations(self, email: str, limit: int = 25) -> SearchOutcome:
        """Contact search for an operator picking a conversation to link by hand."""
        return await self._source.search_by_contact(email.strip().lower(), limit=limit)

