from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.config import MAX_REVIEW_CHARS


class EnrichmentKind(str, Enum):
    # Declaration order is the order requests are issued in.
    REPLY = "response"
    SUMMARY = "summary"
    RECOMMENDED_ACTIONS = "actions"


EnrichmentOutcome = Dict[EnrichmentKind, Optional[str]]


class ReviewCandidate(BaseModel):
    """Raw form input. rating == 0 means no star was selected."""

    rating: int = Field(default=0, ge=0, le=5)
    text: str = Field(default="", max_length=MAX_REVIEW_CHARS)


class ReviewSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    rating: int = Field(ge=1, le=5)
    text: str


class PersistedReview(BaseModel):
    model_config = ConfigDict(frozen=True)

    rating: int
    review: str
    ai_response: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_recommended_actions: Optional[str] = None


class StoredReview(PersistedReview):
    id: int
    created_at: str


class EnrichmentRequest(BaseModel):
    text: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    type: EnrichmentKind


class EnrichmentResponse(BaseModel):
    result: str


class SubmissionResponse(BaseModel):
    message: str
    reply: str


class ReviewList(BaseModel):
    reviews: List[StoredReview]


class ApiError(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorEnvelope(BaseModel):
    error: ApiError
