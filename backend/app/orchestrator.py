from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from backend.app.errors import (
    DEFAULT_REPLY,
    SUCCESS_MESSAGE,
    EnrichmentError,
    PersistenceError,
    ReviewValidationError,
    SubmissionError,
)
from backend.app.llm import EnrichmentClient
from backend.app.log import get_logger
from backend.app.notifications import NotificationSink
from backend.app.persistence import ReviewStore
from backend.app.schemas import (
    EnrichmentKind,
    EnrichmentOutcome,
    PersistedReview,
    ReviewCandidate,
    ReviewSubmission,
)
from backend.app.validation import validate

logger = get_logger("reviews.orchestrator")


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ENRICHING = "enriching"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionOutcome:
    status: str  # "succeeded" | "failed" | "ignored"
    reply: Optional[str] = None
    message: Optional[str] = None
    error: Optional[SubmissionError] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


IGNORED = SubmissionOutcome(status="ignored")


class SubmissionOrchestrator:
    """
    Drives one review submission at a time:
    validate -> enrich (reply, summary, actions; sequential, abort on first
    failure) -> persist -> notify.

    At most one submission is in flight; a submit() made while another is
    running returns an "ignored" outcome without touching any collaborator.
    The last candidate is kept in `draft` whatever the outcome.
    """

    def __init__(
        self,
        *,
        enrichment: EnrichmentClient,
        store: ReviewStore,
        notifications: NotificationSink,
    ) -> None:
        self.enrichment = enrichment
        self.store = store
        self.notifications = notifications
        self._state = SubmissionState.IDLE
        self._draft: Optional[ReviewCandidate] = None
        self._listeners: List[Callable[[SubmissionState], None]] = []

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def in_progress(self) -> bool:
        return self._state is not SubmissionState.IDLE

    @property
    def draft(self) -> Optional[ReviewCandidate]:
        return self._draft

    def subscribe(self, listener: Callable[[SubmissionState], None]) -> None:
        self._listeners.append(listener)

    def _transition(self, state: SubmissionState) -> None:
        logger.info(f"state {self._state.value} -> {state.value}")
        self._state = state
        # listener errors are logged, never propagated
        for listener in self._listeners:
            try:
                listener(state)
            except Exception as e:
                logger.exception(f"state listener failed on {state.value}: {type(e).__name__}: {e}")

    async def submit(self, candidate: ReviewCandidate) -> SubmissionOutcome:
        # check-and-set happens before the first await
        if self.in_progress:
            logger.info("submit ignored: a submission is already in flight")
            return IGNORED
        self._transition(SubmissionState.VALIDATING)
        self._draft = candidate

        try:
            return await self._run(candidate)
        finally:
            self._transition(SubmissionState.IDLE)

    async def _run(self, candidate: ReviewCandidate) -> SubmissionOutcome:
        try:
            submission = validate(candidate)
        except ReviewValidationError as e:
            logger.info(f"validation failed: {e.reason}")
            return self._fail(e)

        self._transition(SubmissionState.ENRICHING)
        try:
            outcome = await self._enrich_all(submission)
        except EnrichmentError as e:
            return self._fail(e)

        record = PersistedReview(
            rating=submission.rating,
            review=submission.text.strip(),
            ai_response=outcome[EnrichmentKind.REPLY],
            ai_summary=outcome[EnrichmentKind.SUMMARY],
            ai_recommended_actions=outcome[EnrichmentKind.RECOMMENDED_ACTIONS],
        )

        self._transition(SubmissionState.PERSISTING)
        try:
            await self.store.persist(record)
        except PersistenceError as e:
            return self._fail(e)
        except Exception as e:
            logger.exception(f"unexpected persistence failure: {type(e).__name__}: {e}")
            return self._fail(PersistenceError(str(e) or None))

        self._transition(SubmissionState.SUCCEEDED)
        self.notifications.notify_success(SUCCESS_MESSAGE)
        reply = record.ai_response or DEFAULT_REPLY
        return SubmissionOutcome(status="succeeded", reply=reply, message=SUCCESS_MESSAGE)

    async def _enrich_all(self, submission: ReviewSubmission) -> EnrichmentOutcome:
        outcome: EnrichmentOutcome = {}
        for kind in EnrichmentKind:
            try:
                outcome[kind] = await self.enrichment.enrich(submission.text, submission.rating, kind)
            except EnrichmentError as e:
                if e.kind is None:
                    e.kind = kind
                logger.error(f"enrichment failed type={kind.value}: {e.message}")
                raise
            except Exception as e:
                logger.exception(f"unexpected enrichment failure type={kind.value}: {type(e).__name__}: {e}")
                raise EnrichmentError(str(e) or None, kind=kind) from e
        return outcome

    def _fail(self, error: SubmissionError) -> SubmissionOutcome:
        self._transition(SubmissionState.FAILED)
        self.notifications.notify_error(error.message)
        return SubmissionOutcome(status="failed", message=error.message, error=error)
