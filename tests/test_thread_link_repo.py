"""Tests for the thread link and audit repositories (in-memory SQLite)."""

import os
import sys
import unittest
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from thread_matcher.audit.recorder import ACTION_THREAD_SEARCHED, ENTITY_ORDER, SqlAuditRecorder
from thread_matcher.db import create_db_engine, init_db
from thread_matcher.db.repositories.audit_repo import STATUS_FAILED, STATUS_SKIPPED, AuditRepository
from thread_matcher.db.repositories.thread_link_repo import ThreadLinkRepository
from thread_matcher.errors import ThreadLinkNotFoundError
from thread_matcher.models.thread_link import MatchStatus, ThreadMatch


def _fresh_factory():
    return init_db(create_db_engine("sqlite://"))


class TestThreadLinkRepository(unittest.TestCase):
    def setUp(self):
        self.repo = ThreadLinkRepository(_fresh_factory())

    def test_upsert_creates_then_replaces_single_row(self):
        self.repo.upsert(ThreadMatch(order_number="42", match_status=MatchStatus.NOT_FOUND))
        link = self.repo.upsert(
            ThreadMatch(
                order_number="42",
                conversation_id="cnv_a",
                match_status=MatchStatus.PENDING_REVIEW,
                confidence_score=0.45,
                order_in_body=True,
                search_method="order_number",
            )
        )
        self.assertEqual(link.match_status, MatchStatus.PENDING_REVIEW)
        self.assertEqual(link.conversation_id, "cnv_a")
        self.assertEqual(link.search_method, "order_number")
        self.assertEqual(self.repo.count_needing_review(), 1)
        self.assertIsNotNone(link.created_at)

    def test_not_found_never_carries_conversation_id(self):
        link = self.repo.upsert(
            ThreadMatch(
                order_number="7",
                conversation_id="cnv_weak",
                match_status=MatchStatus.NOT_FOUND,
                confidence_score=0.1,
            )
        )
        self.assertIsNone(link.conversation_id)
        self.assertEqual(link.confidence_score, 0.1)

    def test_get_by_order_missing(self):
        self.assertIsNone(self.repo.get_by_order("nope"))

    def test_update_status_stamps_reviewer(self):
        self.repo.upsert(ThreadMatch(order_number="1", conversation_id="cnv_a", match_status=MatchStatus.PENDING_REVIEW))
        link = self.repo.update_status("1", MatchStatus.MANUALLY_LINKED, reviewed_by="sam")
        self.assertEqual(link.match_status, MatchStatus.MANUALLY_LINKED)
        self.assertEqual(link.conversation_id, "cnv_a")
        self.assertEqual(link.reviewed_by, "sam")
        self.assertIsNotNone(link.reviewed_at)

    def test_update_status_to_rejected_clears_conversation(self):
        self.repo.upsert(ThreadMatch(order_number="1", conversation_id="cnv_a", match_status=MatchStatus.PENDING_REVIEW))
        link = self.repo.update_status("1", MatchStatus.REJECTED, reviewed_by="sam")
        self.assertIsNone(link.conversation_id)

    def test_update_status_missing_row(self):
        with self.assertRaises(ThreadLinkNotFoundError):
            self.repo.update_status("missing", MatchStatus.REJECTED)

    def test_link_conversation_creates_missing_row(self):
        link = self.repo.link_conversation("99", "cnv_new", reviewed_by="ops")
        self.assertEqual(link.match_status, MatchStatus.MANUALLY_LINKED)
        self.assertEqual(link.conversation_id, "cnv_new")
        self.assertIsNone(link.confidence_score)

    def test_link_to_different_conversation_drops_old_breakdown(self):
        self.repo.upsert(
            ThreadMatch(
                order_number="5",
                conversation_id="cnv_old",
                match_status=MatchStatus.PENDING_REVIEW,
                confidence_score=0.5,
                email_matched=True,
            )
        )
        same = self.repo.link_conversation("5", "cnv_old", reviewed_by="ops")
        self.assertEqual(same.confidence_score, 0.5)
        other = self.repo.link_conversation("5", "cnv_other", reviewed_by="ops")
        self.assertIsNone(other.confidence_score)
        self.assertFalse(other.email_matched)

    def test_clear_thread_resets_to_not_found(self):
        self.repo.link_conversation("8", "cnv_x", reviewed_by="ops")
        link = self.repo.clear_thread("8")
        self.assertEqual(link.match_status, MatchStatus.NOT_FOUND)
        self.assertIsNone(link.conversation_id)
        self.assertIsNone(link.reviewed_by)
        with self.assertRaises(ThreadLinkNotFoundError):
            self.repo.clear_thread("unknown")

    def test_review_queue_ordering(self):
        self.repo.upsert(ThreadMatch(order_number="nf-low", match_status=MatchStatus.NOT_FOUND, confidence_score=0.1))
        self.repo.upsert(ThreadMatch(order_number="nf-none", match_status=MatchStatus.NOT_FOUND))
        self.repo.upsert(ThreadMatch(order_number="pr-low", conversation_id="cnv_1", match_status=MatchStatus.PENDING_REVIEW, confidence_score=0.35))
        self.repo.upsert(ThreadMatch(order_number="pr-high", conversation_id="cnv_2", match_status=MatchStatus.PENDING_REVIEW, confidence_score=0.6))
        self.repo.upsert(ThreadMatch(order_number="auto", conversation_id="cnv_3", match_status=MatchStatus.AUTO_MATCHED, confidence_score=0.9))

        queue = self.repo.list_needing_review()
        self.assertEqual([l.order_number for l in queue], ["pr-high", "pr-low", "nf-low", "nf-none"])
        self.assertEqual(self.repo.count_needing_review(), 4)
        self.assertEqual(len(self.repo.list_needing_review(limit=2)), 2)

    def test_list_linked_and_by_conversation(self):
        self.repo.upsert(ThreadMatch(order_number="a", conversation_id="cnv_1", match_status=MatchStatus.AUTO_MATCHED))
        self.repo.upsert(ThreadMatch(order_number="b", conversation_id="cnv_1", match_status=MatchStatus.PENDING_REVIEW))
        self.repo.link_conversation("c", "cnv_2", reviewed_by="ops")

        linked = self.repo.list_linked()
        self.assertEqual({l.order_number for l in linked}, {"a", "c"})
        self.assertEqual(linked[0].order_number, "c")
        self.assertEqual([l.order_number for l in self.repo.list_by_conversation("cnv_1")], ["a", "b"])


class TestAuditRecorder(unittest.TestCase):
    def setUp(self):
        self.audit_repo = AuditRepository(_fresh_factory())
        self.recorder = SqlAuditRecorder(self.audit_repo)

    def test_history_newest_first_with_metadata(self):
        self.recorder.record_success(ENTITY_ORDER, "42", ACTION_THREAD_SEARCHED, metadata={"method": "email"})
        self.recorder.record_failed(ENTITY_ORDER, "42", ACTION_THREAD_SEARCHED, error="timeout", metadata={"method": "order_number"})
        self.recorder.record_skipped(ENTITY_ORDER, "42", ACTION_THREAD_SEARCHED, reason="no facts")

        history = self.audit_repo.history(ENTITY_ORDER, "42")
        self.assertEqual(len(history), 3)
        self.assertEqual(history[0].status, STATUS_SKIPPED)
        self.assertEqual(history[0].metadata["reason"], "no facts")
        self.assertEqual(history[1].status, STATUS_FAILED)
        self.assertEqual(history[1].error, "timeout")
        self.assertEqual(history[2].metadata, {"method": "email"})
        self.assertEqual(history[2].actor, "system")

    def test_history_filters_by_action_and_entity(self):
        self.recorder.record_failed(ENTITY_ORDER, "1", ACTION_THREAD_SEARCHED, error="boom")
        self.recorder.record_skipped(ENTITY_ORDER, "1", "thread_cleared", reason="manual")
        self.recorder.record_failed(ENTITY_ORDER, "2", ACTION_THREAD_SEARCHED, error="other")

        searched = self.audit_repo.history(ENTITY_ORDER, "1", action=ACTION_THREAD_SEARCHED)
        self.assertEqual([e.error for e in searched], ["boom"])
        self.assertEqual(len(self.audit_repo.history(ENTITY_ORDER, "1")), 2)

    def test_write_failure_is_logged_not_raised(self):
        class BrokenRepo:
            def add(self, **kwargs):
                raise RuntimeError("db down")

        SqlAuditRecorder(BrokenRepo()).record_success(ENTITY_ORDER, "1", ACTION_THREAD_SEARCHED)


if __name__ == "__main__":
    unittest.main()
