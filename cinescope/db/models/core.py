"""SQLAlchemy models for the SQL telemetry backend."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cinescope.db.base import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SearchRecordRow(Base):
    __tablename__ = "search_records"
    __table_args__ = (UniqueConstraint("search_term", name="uq_search_records_search_term"),)

    search_term: Mapped[str] = mapped_column(String(255), nullable=False)
    movie_id: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    count: Mapped[int | None] = mapped_column(Integer, default=1)
    poster_url: Mapped[str | None] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def to_document(self) -> dict:
        return {
            "$id": str(self.id),
            "searchTerm": self.search_term,
            "movie_id": self.movie_id,
            "title": self.title,
            "count": self.count,
            "poster_url": self.poster_url,
        }


__all__ = ["SearchRecordRow"]
