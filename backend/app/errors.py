from typing import Optional

MISSING_RATING = "MISSING_RATING"
EMPTY_TEXT = "EMPTY_TEXT"

MISSING_RATING_MESSAGE = "Please select a star rating"
EMPTY_TEXT_MESSAGE = "Please write a review"
GENERIC_FAILURE_MESSAGE = "Failed to submit review. Please try again."
SUCCESS_MESSAGE = "Review submitted successfully!"
DEFAULT_REPLY = "Thank you for your feedback!"


class SubmissionError(Exception):
    """Base class for everything that ends a submission attempt."""

    code = "SUBMISSION_FAILED"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or GENERIC_FAILURE_MESSAGE)
        self.message = message or GENERIC_FAILURE_MESSAGE


class ReviewValidationError(SubmissionError):
    code = "VALIDATION_FAILED"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class EnrichmentError(SubmissionError):
    code = "ENRICHMENT_FAILED"

    def __init__(self, message: Optional[str] = None, kind=None):
        super().__init__(message)
        self.kind = kind


class PersistenceError(SubmissionError):
    code = "PERSISTENCE_FAILED"
