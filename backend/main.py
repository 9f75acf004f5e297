from typing import Optional

from fastapi import FastAPI, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.config import Settings, load_settings
from backend.app.db import SessionLocal, init_db
from backend.app.errors import (
    EnrichmentError,
    ReviewValidationError,
    SubmissionError,
)
from backend.app.llm import DeepSeekEnrichmentClient, EnrichmentClient
from backend.app.log import get_logger
from backend.app.notifications import CollectingNotificationSink, LoggingNotificationSink
from backend.app.orchestrator import SubmissionOrchestrator
from backend.app.persistence import SqlAlchemyReviewStore
from backend.app.schemas import (
    ApiError,
    EnrichmentRequest,
    EnrichmentResponse,
    ErrorEnvelope,
    ReviewCandidate,
    ReviewList,
    SubmissionResponse,
)

logger = get_logger("reviews.api")

app = FastAPI(title="Review Intake Service")

# create tables if missing
init_db()

# Dev CORS: allow localhost frontends
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # dev only; tighten in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_settings() -> Settings:
    return load_settings()


def get_enrichment_client(settings: Settings = Depends(get_settings)) -> EnrichmentClient:
    return DeepSeekEnrichmentClient(settings)


def get_review_store() -> SqlAlchemyReviewStore:
    return SqlAlchemyReviewStore(SessionLocal)


def _status_for(error: SubmissionError) -> int:
    if isinstance(error, ReviewValidationError):
        return 400
    if isinstance(error, EnrichmentError):
        return 502
    return 500


def _error_response(error: SubmissionError, message: Optional[str] = None) -> JSONResponse:
    details = None
    if isinstance(error, ReviewValidationError):
        details = {"reason": error.reason}
    elif isinstance(error, EnrichmentError) and error.kind is not None:
        details = {"type": error.kind.value}
    return JSONResponse(
        status_code=_status_for(error),
        content=ErrorEnvelope(
            error=ApiError(code=error.code, message=message or error.message, details=details)
        ).model_dump(),
    )


@app.get("/ping")
def ping():
    return {"msg": "ok"}


@app.post("/api/reviews", response_model=SubmissionResponse)
async def submit_review(
    candidate: ReviewCandidate,
    enrichment: EnrichmentClient = Depends(get_enrichment_client),
    store: SqlAlchemyReviewStore = Depends(get_review_store),
):
    """
    Validate the review, generate reply/summary/actions, store the combined
    record and return the reply. Nothing is stored if any step fails.
    """
    sink = CollectingNotificationSink(forward=LoggingNotificationSink())
    orchestrator = SubmissionOrchestrator(
        enrichment=enrichment,
        store=store,
        notifications=sink,
    )

    outcome = await orchestrator.submit(candidate)
    _, message = sink.last
    if not outcome.succeeded:
        return _error_response(outcome.error, message)

    return SubmissionResponse(message=message, reply=outcome.reply)


@app.get("/api/reviews", response_model=ReviewList)
async def list_reviews(
    limit: int = Query(50, ge=1, le=200),
    store: SqlAlchemyReviewStore = Depends(get_review_store),
):
    return ReviewList(reviews=await store.list_reviews(limit))


@app.post("/api/process-review", response_model=EnrichmentResponse)
async def process_review(
    request: EnrichmentRequest,
    enrichment: EnrichmentClient = Depends(get_enrichment_client),
):
    try:
        result = await enrichment.enrich(request.text, request.rating, request.type)
    except EnrichmentError as e:
        logger.error(f"process-review failed type={request.type.value}: {e.message}")
        return _error_response(e)
    return EnrichmentResponse(result=result or "")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, reload=True)
