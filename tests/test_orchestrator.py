from __future__ import annotations

import asyncio

import pytest

from conftest import FakeEnrichment, FakeStore, run

from backend.app.errors import (
    EnrichmentError,
    PersistenceError,
    ReviewValidationError,
)
from backend.app.notifications import CollectingNotificationSink
from backend.app.orchestrator import SubmissionOrchestrator, SubmissionState
from backend.app.schemas import EnrichmentKind, ReviewCandidate

ALL_KINDS = [EnrichmentKind.REPLY, EnrichmentKind.SUMMARY, EnrichmentKind.RECOMMENDED_ACTIONS]


def make(enrichment=None, store=None):
    enrichment = enrichment or FakeEnrichment()
    store = store or FakeStore()
    sink = CollectingNotificationSink()
    orch = SubmissionOrchestrator(enrichment=enrichment, store=store, notifications=sink)
    return orch, enrichment, store, sink


def test_happy_path_persists_and_returns_reply():
    results = {
        EnrichmentKind.REPLY: "R",
        EnrichmentKind.SUMMARY: "S",
        EnrichmentKind.RECOMMENDED_ACTIONS: "A",
    }
    orch, enrichment, store, sink = make(FakeEnrichment(results=results))

    outcome = run(orch.submit(ReviewCandidate(rating=5, text="Great service!")))

    assert outcome.succeeded
    assert outcome.reply == "R"
    assert [c[2] for c in enrichment.calls] == ALL_KINDS
    assert len(store.records) == 1
    rec = store.records[0]
    assert (rec.rating, rec.review, rec.ai_response, rec.ai_summary, rec.ai_recommended_actions) == (
        5, "Great service!", "R", "S", "A",
    )
    assert sink.messages == [("success", "Review submitted successfully!")]
    assert orch.state is SubmissionState.IDLE


def test_persisted_review_is_trimmed_but_enrichment_sees_raw_text():
    orch, enrichment, store, _ = make()
    run(orch.submit(ReviewCandidate(rating=4, text="  nice place \n")))
    assert all(c[0] == "  nice place \n" for c in enrichment.calls)
    assert store.records[0].review == "nice place"


def test_missing_rating_makes_no_calls():
    orch, enrichment, store, sink = make()
    outcome = run(orch.submit(ReviewCandidate(rating=0, text="ok")))

    assert outcome.status == "failed"
    assert isinstance(outcome.error, ReviewValidationError)
    assert outcome.reply is None
    assert enrichment.calls == []
    assert store.records == []
    assert sink.messages == [("error", "Please select a star rating")]


def test_empty_text_makes_no_calls():
    orch, enrichment, store, sink = make()
    outcome = run(orch.submit(ReviewCandidate(rating=3, text="   ")))

    assert outcome.error.reason == "EMPTY_TEXT"
    assert enrichment.calls == []
    assert sink.last == ("error", "Please write a review")


@pytest.mark.parametrize("failing_index", [0, 1, 2])
def test_enrichment_failure_stops_remaining_calls(failing_index):
    failing = ALL_KINDS[failing_index]
    orch, enrichment, store, sink = make(FakeEnrichment(fail_on=[failing]))

    outcome = run(orch.submit(ReviewCandidate(rating=4, text="fine")))

    assert outcome.status == "failed"
    assert isinstance(outcome.error, EnrichmentError)
    assert outcome.error.kind is failing
    assert [c[2] for c in enrichment.calls] == ALL_KINDS[: failing_index + 1]
    assert store.records == []
    assert sink.messages == [("error", "model unavailable")]


def test_reply_failure_keeps_draft_for_resubmission():
    orch, enrichment, _, _ = make(FakeEnrichment(fail_on=[EnrichmentKind.REPLY]))
    candidate = ReviewCandidate(rating=4, text="fine")

    run(orch.submit(candidate))

    assert len(enrichment.calls) == 1
    assert orch.draft == candidate
    assert not orch.in_progress


def test_enrichment_error_without_message_uses_generic_fallback():
    orch, _, _, sink = make(FakeEnrichment(fail_on=[EnrichmentKind.SUMMARY], message=""))
    outcome = run(orch.submit(ReviewCandidate(rating=2, text="meh")))
    assert outcome.message == "Failed to submit review. Please try again."
    assert sink.last == ("error", "Failed to submit review. Please try again.")


def test_unexpected_enrichment_exception_is_reported_as_enrichment_error():
    class Broken(FakeEnrichment):
        async def enrich(self, text, rating, kind):
            self.calls.append((text, rating, kind))
            raise RuntimeError("connection reset")

    orch, enrichment, store, sink = make(Broken())
    outcome = run(orch.submit(ReviewCandidate(rating=2, text="meh")))

    assert isinstance(outcome.error, EnrichmentError)
    assert outcome.error.kind is EnrichmentKind.REPLY
    assert len(enrichment.calls) == 1
    assert sink.last == ("error", "connection reset")


def test_persistence_failure_is_reported():
    orch, enrichment, store, sink = make(store=FakeStore(fail=True))
    outcome = run(orch.submit(ReviewCandidate(rating=1, text="bad")))

    assert isinstance(outcome.error, PersistenceError)
    assert len(enrichment.calls) == 3
    assert sink.messages == [("error", "disk full")]
    assert orch.state is SubmissionState.IDLE


def test_blank_reply_falls_back_to_default_acknowledgement():
    orch, _, store, _ = make(FakeEnrichment(results={EnrichmentKind.REPLY: None}))
    outcome = run(orch.submit(ReviewCandidate(rating=5, text="ok")))
    assert outcome.reply == "Thank you for your feedback!"
    assert store.records[0].ai_response is None


def test_state_transitions_are_published():
    orch, _, _, _ = make()
    seen = []
    orch.subscribe(seen.append)

    run(orch.submit(ReviewCandidate(rating=5, text="ok")))

    assert seen == [
        SubmissionState.VALIDATING,
        SubmissionState.ENRICHING,
        SubmissionState.PERSISTING,
        SubmissionState.SUCCEEDED,
        SubmissionState.IDLE,
    ]


def test_validation_failure_transitions():
    orch, _, _, _ = make()
    seen = []
    orch.subscribe(seen.append)
    run(orch.submit(ReviewCandidate(rating=0, text="ok")))
    assert seen == [SubmissionState.VALIDATING, SubmissionState.FAILED, SubmissionState.IDLE]


def test_second_submit_while_in_flight_is_ignored():
    async def scenario():
        gate = asyncio.Event()
        orch, enrichment, store, sink = make(FakeEnrichment(gate=gate))

        first = asyncio.create_task(orch.submit(ReviewCandidate(rating=5, text="first")))
        while not enrichment.calls:
            await asyncio.sleep(0)

        assert orch.in_progress
        assert orch.state is SubmissionState.ENRICHING
        second = await orch.submit(ReviewCandidate(rating=1, text="second"))
        assert second.status == "ignored"
        assert len(enrichment.calls) == 1

        gate.set()
        result = await first
        return result, enrichment, store, sink, orch

    result, enrichment, store, sink, orch = run(scenario())

    assert result.succeeded
    assert len(enrichment.calls) == 3
    assert all(c[0] == "first" for c in enrichment.calls)
    assert [r.review for r in store.records] == ["first"]
    assert sink.messages == [("success", "Review submitted successfully!")]
    assert orch.draft.text == "first"


def test_orchestrator_accepts_a_new_submission_after_failure():
    orch, enrichment, store, _ = make(FakeEnrichment(fail_on=[EnrichmentKind.REPLY]))
    run(orch.submit(ReviewCandidate(rating=4, text="fine")))

    enrichment.fail_on.clear()
    outcome = run(orch.submit(orch.draft))

    assert outcome.succeeded
    assert store.records[0].review == "fine"


def test_failing_listener_does_not_wedge_the_guard():
    orch, enrichment, store, sink = make()

    def broken_listener(state):
        raise RuntimeError("ui gone")

    orch.subscribe(broken_listener)

    first = run(orch.submit(ReviewCandidate(rating=5, text="first")))
    assert first.succeeded
    assert sink.messages == [("success", "Review submitted successfully!")]
    assert orch.state is SubmissionState.IDLE
    assert not orch.in_progress

    second = run(orch.submit(ReviewCandidate(rating=4, text="second")))
    assert second.succeeded
    assert len(enrichment.calls) == 6
    assert [r.review for r in store.records] == ["first", "second"]


def test_unexpected_store_exception_is_reported_as_persistence_error():
    class ExplodingStore(FakeStore):
        async def persist(self, record):
            raise OSError("read-only file system")

    orch, _, _, sink = make(store=ExplodingStore())
    outcome = run(orch.submit(ReviewCandidate(rating=3, text="ok")))

    assert isinstance(outcome.error, PersistenceError)
    assert outcome.message == "read-only file system"
    assert sink.messages == [("error", "read-only file system")]
    assert orch.state is SubmissionState.IDLE
