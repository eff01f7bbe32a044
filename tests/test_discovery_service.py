"""Tests for ThreadDiscoveryService: end-to-end discovery against a scripted source."""

import asyncio
import os
import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from thread_matcher.audit.recorder import (
    ACTION_THREAD_AUTO_MATCHED,
    ACTION_THREAD_NO_MATCH,
    ACTION_THREAD_SEARCHED,
    ENTITY_ORDER,
    SqlAuditRecorder,
)
from thread_matcher.db import create_db_engine, init_db
from thread_matcher.db.repositories.audit_repo import STATUS_FAILED, STATUS_SKIPPED, AuditRepository
from thread_matcher.db.repositories.thread_link_repo import ThreadLinkRepository
from thread_matcher.discovery.orchestrator import ThreadDiscoveryService
from thread_matcher.events import DomainEventEmitter, ThreadLinked
from thread_matcher.matching.settings import MatchingConfig, MatchThresholds
from thread_matcher.models.candidate import ConversationCandidate
from thread_matcher.models.order import OrderFacts
from thread_matcher.models.thread_link import MatchStatus, ThreadMatch
from thread_matcher.sources.protocol import SearchOutcome

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _candidate(cid, subject=None, participants=(), days_ago=2, matched_by_query=False):
    return ConversationCandidate(
        conversation_id=cid,
        subject=subject,
        participants=list(participants),
        last_message_at=NOW - timedelta(days=days_ago),
        matched_by_query=matched_by_query,
    )


class ScriptedSource:
    """Returns canned outcomes per (kind, term); records every call."""

    def __init__(self, contact=None, query=None, delay=0.0):
        self.contact = contact or {}
        self.query = query or {}
        self.delay = delay
        self.calls = []

    async def search_by_contact(self, handle, limit=25):
        self.calls.append(("contact", handle))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.contact.get(handle, SearchOutcome.ok([]))

    async def search_by_query(self, query, limit=25):
        self.calls.append(("query", query))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.query.get(query, SearchOutcome.ok([]))


class RaisingSource(ScriptedSource):
    """Contact search raises instead of returning a failed outcome."""

    async def search_by_contact(self, handle, limit=25):
        self.calls.append(("contact", handle))
        raise RuntimeError("boom")


class FailingUpsertRepository(ThreadLinkRepository):
    """Store whose writes fail for one order number."""

    def __init__(self, session_factory, fail_for):
        super().__init__(session_factory)
        self.fail_for = fail_for

    def upsert(self, match):
        if match.order_number == self.fail_for:
            raise RuntimeError("database is locked")
        return super().upsert(match)


class DiscoveryTestCase(unittest.TestCase):
    def setUp(self):
        self.factory = init_db(create_db_engine("sqlite://"))
        self.repo = ThreadLinkRepository(self.factory)
        self.audit_repo = AuditRepository(self.factory)
        self.events = DomainEventEmitter()
        self.linked_events = []
        self.events.on(ThreadLinked, self.linked_events.append)

    def service(self, source, config=None, **kwargs):
        config = config or MatchingConfig()
        return ThreadDiscoveryService(
            self.repo,
            source,
            SqlAuditRecorder(self.audit_repo),
            events=self.events,
            config_provider=lambda: config,
            clock=lambda: NOW,
            **kwargs,
        )

    def discover(self, service, *args, **kwargs):
        async def _run():
            result = await service.discover_thread(*args, **kwargs)
            await self.events.drain()
            return result

        return asyncio.run(_run())

    def history(self, order_number, action=None):
        return self.audit_repo.history(ENTITY_ORDER, order_number, action=action)


class TestDiscoveryScenarios(DiscoveryTestCase):
    def test_email_and_subject_match_auto_links(self):
        source = ScriptedSource(
            contact={"a@x.com": SearchOutcome.ok([_candidate("cnv_a", "Order 42 shipped?", ["a@x.com"])])}
        )
        result = self.discover(self.service(source), "42", customer_email="a@x.com")

        self.assertEqual(result.status, "linked")
        self.assertEqual(result.candidates_found, 1)
        self.assertGreaterEqual(result.top_score, 0.7)
        self.assertEqual(result.search_method, "email")
        self.assertIsNone(result.reason)
        link = self.repo.get_by_order("42")
        self.assertEqual(link.match_status, MatchStatus.AUTO_MATCHED)
        self.assertEqual(link.conversation_id, "cnv_a")
        self.assertEqual(link.conversation_subject, "Order 42 shipped?")
        self.assertTrue(link.email_matched and link.order_in_subject)
        self.assertEqual(link.days_since_last_message, 2)
        # email search found candidates, so nothing else ran
        self.assertEqual(source.calls, [("contact", "a@x.com")])
        self.assertEqual(len(self.linked_events), 1)
        self.assertEqual(self.linked_events[0].conversation_id, "cnv_a")
        self.assertEqual(self.linked_events[0].match_type, "auto_matched")
        auto = self.history("42", ACTION_THREAD_AUTO_MATCHED)
        self.assertEqual(len(auto), 1)
        self.assertEqual(auto[0].metadata["conversationId"], "cnv_a")

    def test_order_number_query_hit_goes_to_review(self):
        source = ScriptedSource(
            query={
                "42": SearchOutcome.ok(
                    [_candidate("cnv_b", "Question about delivery", ["someone@else.com"], days_ago=3, matched_by_query=True)]
                )
            }
        )
        result = self.discover(self.service(source), "42", order_name="Big Blue Order")

        self.assertEqual(result.status, "pending_review")
        self.assertEqual(source.calls, [("query", "Big Blue Order"), ("query", "42")])
        self.assertEqual(result.search_method, "order_number")
        link = self.repo.get_by_order("42")
        self.assertEqual(link.match_status, MatchStatus.PENDING_REVIEW)
        self.assertEqual(link.conversation_id, "cnv_b")
        self.assertTrue(link.order_in_body)
        self.assertEqual(self.linked_events, [])
        self.assertEqual(len(self.history("42", ACTION_THREAD_SEARCHED)), 2)

    def test_no_identifiers_skips_without_searching(self):
        source = ScriptedSource()
        result = self.discover(self.service(source), "")

        self.assertEqual(result.status, "not_found")
        self.assertIsNotNone(result.reason)
        self.assertEqual(source.calls, [])
        entries = self.history("unknown")
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].status, STATUS_SKIPPED)
        self.assertIsNone(self.repo.get_by_order(""))

    def test_email_without_order_number_is_not_persisted(self):
        source = ScriptedSource()
        result = self.discover(self.service(source), "  ", customer_email="a@x.com")
        self.assertEqual(result.status, "not_found")
        self.assertEqual(source.calls, [])

    def test_no_candidates_records_not_found(self):
        source = ScriptedSource()
        result = self.discover(self.service(source), "77", customer_email="nobody@x.com")

        self.assertEqual(result.status, "not_found")
        self.assertEqual(result.candidates_found, 0)
        self.assertIn("No conversations found", result.reason)
        link = self.repo.get_by_order("77")
        self.assertEqual(link.match_status, MatchStatus.NOT_FOUND)
        self.assertEqual(link.matched_email, "nobody@x.com")
        self.assertEqual(len(self.history("77", ACTION_THREAD_NO_MATCH)), 1)

    def test_low_confidence_keeps_score_but_not_conversation(self):
        source = ScriptedSource(
            contact={"a@x.com": SearchOutcome.ok([_candidate("cnv_old", "Newsletter", ["a@x.com"], days_ago=400)])}
        )
        result = self.discover(self.service(source), "42", customer_email="a@x.com")

        self.assertEqual(result.status, "not_found")
        self.assertEqual(result.candidates_found, 1)
        self.assertEqual(result.top_score, 0.25)
        self.assertEqual(result.reason, "1 conversation(s) found but confidence too low (25%)")
        link = self.repo.get_by_order("42")
        self.assertIsNone(link.conversation_id)
        self.assertEqual(link.confidence_score, 0.25)

    def test_best_candidate_wins(self):
        source = ScriptedSource(
            contact={
                "a@x.com": SearchOutcome.ok(
                    [
                        _candidate("cnv_other", "Hello", ["a@x.com"]),
                        _candidate("cnv_order", "Order 42", ["a@x.com"]),
                    ]
                )
            }
        )
        result = self.discover(self.service(source), "42", customer_email="a@x.com")
        self.assertEqual(result.thread_link.conversation_id, "cnv_order")
        self.assertEqual(result.candidates_found, 2)

    def test_thresholds_come_from_config(self):
        strict = MatchingConfig(thresholds=MatchThresholds(auto_match=0.95, review=0.3))
        source = ScriptedSource(
            contact={"a@x.com": SearchOutcome.ok([_candidate("cnv_a", "Order 42", ["a@x.com"], days_ago=10)])}
        )
        result = self.discover(self.service(source, config=strict), "42", customer_email="a@x.com")
        self.assertEqual(result.status, "pending_review")


class TestDiscoveryIdempotency(DiscoveryTestCase):
    def _auto_source(self):
        return ScriptedSource(
            contact={"a@x.com": SearchOutcome.ok([_candidate("cnv_a", "Order 42", ["a@x.com"])])}
        )

    def test_confirmed_link_is_not_searched_again(self):
        service = self.service(self._auto_source())
        self.discover(service, "42", customer_email="a@x.com")
        second_source = self._auto_source()
        result = self.discover(self.service(second_source), "42", customer_email="a@x.com")

        self.assertEqual(result.status, "already_linked")
        self.assertEqual(result.thread_link.conversation_id, "cnv_a")
        self.assertEqual(second_source.calls, [])
        self.assertEqual(len(self.linked_events), 1)

    def test_manual_and_rejected_links_are_left_alone(self):
        self.repo.link_conversation("1", "cnv_manual", reviewed_by="ops")
        self.repo.upsert(ThreadMatch(order_number="2", conversation_id="cnv_x", match_status=MatchStatus.PENDING_REVIEW))
        self.repo.update_status("2", MatchStatus.REJECTED, reviewed_by="ops")

        source = self._auto_source()
        service = self.service(source)
        self.assertEqual(self.discover(service, "1", customer_email="a@x.com").status, "already_linked")
        self.assertEqual(self.discover(service, "2", customer_email="a@x.com").status, "already_linked")
        self.assertEqual(source.calls, [])
        self.assertEqual(self.repo.get_by_order("1").conversation_id, "cnv_manual")

    def test_pending_review_can_upgrade_on_rediscovery(self):
        self.repo.upsert(ThreadMatch(order_number="42", conversation_id="cnv_weak", match_status=MatchStatus.PENDING_REVIEW, confidence_score=0.35))
        result = self.discover(self.service(self._auto_source()), "42", customer_email="a@x.com")
        self.assertEqual(result.status, "linked")
        self.assertEqual(self.repo.get_by_order("42").conversation_id, "cnv_a")


class TestSearchFailures(DiscoveryTestCase):
    def test_failed_search_falls_through_to_next_strategy(self):
        source = ScriptedSource(
            contact={"a@x.com": SearchOutcome.failure("Front API error: 503")},
            query={"42": SearchOutcome.ok([_candidate("cnv_q", "Order 42", matched_by_query=True)])},
        )
        result = self.discover(self.service(source), "42", customer_email="a@x.com")

        self.assertEqual(result.status, "pending_review")
        failed = [e for e in self.history("42", ACTION_THREAD_SEARCHED) if e.status == STATUS_FAILED]
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0].error, "Front API error: 503")

    def test_all_searches_failing_degrades_to_not_found(self):
        source = ScriptedSource(
            contact={"a@x.com": SearchOutcome.failure("boom")},
            query={"42": SearchOutcome.failure("boom")},
        )
        result = self.discover(self.service(source), "42", customer_email="a@x.com")
        self.assertEqual(result.status, "not_found")
        self.assertEqual(result.reason, "Conversation search failed: boom")
        self.assertEqual(self.repo.get_by_order("42").match_status, MatchStatus.NOT_FOUND)

    def test_partial_failure_mentioned_in_reason(self):
        source = ScriptedSource(contact={"a@x.com": SearchOutcome.failure("boom")})
        result = self.discover(self.service(source), "42", customer_email="a@x.com")
        self.assertEqual(result.reason, "No conversations found for a@x.com (1 of 2 searches failed)")

    def test_failures_never_touch_confirmed_link(self):
        self.repo.link_conversation("42", "cnv_keep", reviewed_by="ops")
        source = ScriptedSource(contact={"a@x.com": SearchOutcome.failure("boom")})
        result = self.discover(self.service(source), "42", customer_email="a@x.com")
        self.assertEqual(result.status, "already_linked")
        self.assertEqual(self.repo.get_by_order("42").conversation_id, "cnv_keep")

    def test_failed_rediscovery_keeps_pending_suggestion(self):
        self.repo.upsert(
            ThreadMatch(
                order_number="42",
                conversation_id="cnv_keep",
                match_status=MatchStatus.PENDING_REVIEW,
                confidence_score=0.5,
            )
        )
        source = ScriptedSource(
            contact={"a@x.com": SearchOutcome.failure("503")},
            query={"42": SearchOutcome.failure("503")},
        )
        result = self.discover(self.service(source), "42", customer_email="a@x.com")

        self.assertEqual(result.status, "not_found")
        self.assertEqual(result.reason, "Conversation search failed: 503")
        self.assertEqual(result.thread_link.conversation_id, "cnv_keep")
        link = self.repo.get_by_order("42")
        self.assertEqual(link.match_status, MatchStatus.PENDING_REVIEW)
        self.assertEqual(link.conversation_id, "cnv_keep")
        self.assertEqual(link.confidence_score, 0.5)
        self.assertEqual(self.history("42", ACTION_THREAD_NO_MATCH), [])

    def test_partially_failed_rediscovery_keeps_existing_row(self):
        self.repo.upsert(
            ThreadMatch(
                order_number="42",
                conversation_id="cnv_keep",
                match_status=MatchStatus.PENDING_REVIEW,
                confidence_score=0.5,
            )
        )
        source = ScriptedSource(contact={"a@x.com": SearchOutcome.failure("503")})
        self.discover(self.service(source), "42", customer_email="a@x.com")
        self.assertEqual(self.repo.get_by_order("42").conversation_id, "cnv_keep")

    def test_clean_empty_rediscovery_replaces_suggestion(self):
        self.repo.upsert(
            ThreadMatch(
                order_number="42",
                conversation_id="cnv_old",
                match_status=MatchStatus.PENDING_REVIEW,
                confidence_score=0.5,
            )
        )
        self.discover(self.service(ScriptedSource()), "42", customer_email="a@x.com")
        link = self.repo.get_by_order("42")
        self.assertEqual(link.match_status, MatchStatus.NOT_FOUND)
        self.assertIsNone(link.conversation_id)

    def test_source_that_raises_counts_as_failed_search(self):
        source = RaisingSource(
            query={"42": SearchOutcome.ok([_candidate("cnv_q", "Order 42", matched_by_query=True)])}
        )
        result = self.discover(self.service(source), "42", customer_email="a@x.com")

        self.assertEqual(result.status, "pending_review")
        self.assertEqual(source.calls, [("contact", "a@x.com"), ("query", "42")])
        failed = [e for e in self.history("42", ACTION_THREAD_SEARCHED) if e.status == STATUS_FAILED]
        self.assertEqual([e.error for e in failed], ["boom"])

    def test_source_that_raises_on_every_search_degrades_to_not_found(self):
        class AlwaysRaising(RaisingSource):
            async def search_by_query(self, query, limit=25):
                raise RuntimeError("boom")

        result = self.discover(self.service(AlwaysRaising()), "42", customer_email="a@x.com")
        self.assertEqual(result.status, "not_found")
        self.assertEqual(result.reason, "Conversation search failed: boom")

    def test_slow_search_times_out(self):
        source = ScriptedSource(delay=0.5)
        service = self.service(source, search_timeout_seconds=0.01)
        result = self.discover(service, "42")
        self.assertEqual(result.status, "not_found")
        self.assertIn("timed out", result.reason)


class TestDiscoverMany(DiscoveryTestCase):
    def test_results_follow_input_order(self):
        source = ScriptedSource(
            contact={"a@x.com": SearchOutcome.ok([_candidate("cnv_a", "Order 1", ["a@x.com"])])}
        )
        orders = [
            OrderFacts(order_number="1", customer_email="a@x.com"),
            OrderFacts(order_number="2"),
            OrderFacts(order_number=""),
        ]

        async def _run():
            results = await self.service(source).discover_many(orders, concurrency=2)
            await self.events.drain()
            return results

        results = asyncio.run(_run())
        self.assertEqual([r.order_number for r in results], ["1", "2", ""])
        self.assertEqual([r.status for r in results], ["linked", "not_found", "not_found"])

    def test_one_failing_order_does_not_sink_the_batch(self):
        self.repo = FailingUpsertRepository(self.factory, fail_for="2")
        orders = [OrderFacts(order_number=n) for n in ("1", "2", "3")]

        async def _run():
            return await self.service(ScriptedSource()).discover_many(orders, concurrency=3)

        results = asyncio.run(_run())
        self.assertEqual(results[0].order_number, "1")
        self.assertIsInstance(results[1], RuntimeError)
        self.assertEqual(str(results[1]), "database is locked")
        self.assertEqual(results[2].order_number, "3")
        self.assertIsNotNone(self.repo.get_by_order("1"))
        self.assertIsNone(self.repo.get_by_order("2"))
        self.assertIsNotNone(self.repo.get_by_order("3"))

    def test_search_conversations_normalizes_email(self):
        source = ScriptedSource(contact={"a@x.com": SearchOutcome.ok([_candidate("cnv_a")])})
        outcome = asyncio.run(self.service(source).search_conversations("  A@X.com "))
        self.assertEqual([c.conversation_id for c in outcome.candidates], ["cnv_a"])


if __name__ == "__main__":
    unittest.main()
