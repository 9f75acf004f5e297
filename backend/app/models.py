from sqlalchemy import Column, Integer, Text, DateTime
from datetime import datetime, timezone

from .db import Base


def now_utc():
  return datetime.now(timezone.utc)


class ReviewORM(Base):
  __tablename__ = "reviews"

  id = Column(Integer, primary_key=True, index=True)
  rating = Column(Integer, nullable=False)
  review = Column(Text, nullable=False)

  # written together with the review or not at all
  ai_response = Column(Text, nullable=True)
  ai_summary = Column(Text, nullable=True)
  ai_recommended_actions = Column(Text, nullable=True)

  created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
