from typing import List, Protocol

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from backend.app.errors import PersistenceError
from backend.app.log import get_logger
from backend.app.models import ReviewORM
from backend.app.schemas import PersistedReview, StoredReview

logger = get_logger("reviews.persistence")


class ReviewStore(Protocol):
    async def persist(self, record: PersistedReview) -> None: ...


class SqlAlchemyReviewStore:
    """Writes the composite review row in a single transaction."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    async def persist(self, record: PersistedReview) -> None:
        await run_in_threadpool(self._insert, record)

    def _insert(self, record: PersistedReview) -> None:
        session = self.session_factory()
        try:
            row = ReviewORM(**record.model_dump())
            session.add(row)
            session.commit()
            logger.info(f"Stored review id={row.id} rating={row.rating}")
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception(f"Review insert failed: {type(e).__name__}: {e}")
            raise PersistenceError(f"Failed to save review: {e}") from e
        finally:
            session.close()

    async def list_reviews(self, limit: int = 50) -> List[StoredReview]:
        return await run_in_threadpool(self._select_recent, limit)

    def _select_recent(self, limit: int) -> List[StoredReview]:
        session = self.session_factory()
        try:
            rows = (
                session.query(ReviewORM)
                .order_by(ReviewORM.created_at.desc(), ReviewORM.id.desc())
                .limit(limit)
                .all()
            )
            return [
                StoredReview(
                    id=r.id,
                    rating=r.rating,
                    review=r.review,
                    ai_response=r.ai_response,
                    ai_summary=r.ai_summary,
                    ai_recommended_actions=r.ai_recommended_actions,
                    created_at=r.created_at.isoformat(),
                )
                for r in rows
            ]
        finally:
            session.close()
