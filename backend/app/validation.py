from backend.app.errors import (
    EMPTY_TEXT,
    EMPTY_TEXT_MESSAGE,
    MISSING_RATING,
    MISSING_RATING_MESSAGE,
    ReviewValidationError,
)
from backend.app.schemas import ReviewCandidate, ReviewSubmission


def validate(candidate: ReviewCandidate) -> ReviewSubmission:
    """
    Check a candidate against the acceptance rules, first failure wins:
    - rating not selected -> MISSING_RATING
    - text empty after trimming -> EMPTY_TEXT
    The text is passed through untrimmed.
    """
    if candidate.rating == 0:
        raise ReviewValidationError(MISSING_RATING, MISSING_RATING_MESSAGE)

    if not candidate.text.strip():
        raise ReviewValidationError(EMPTY_TEXT, EMPTY_TEXT_MESSAGE)

    return ReviewSubmission(rating=candidate.rating, text=candidate.text)
