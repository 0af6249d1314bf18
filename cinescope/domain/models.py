"""Pydantic models shared across logic/application layers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatalogItem(BaseModel):
    """A movie as returned by the catalog; unknown fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str
    poster_path: str | None = None


class NewSearchRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search_term: str = Field(alias="searchTerm")
    movie_id: int
    title: str
    count: int = Field(default=1, ge=1)
    poster_url: str | None = None

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class SearchRecord(NewSearchRecord):
    """A stored search record; ``id`` is the store's identity for the document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="$id")
    count: int = Field(default=0, ge=0)

    @field_validator("count", mode="before")
    @classmethod
    def _missing_count_is_zero(cls, value):
        return 0 if value is None else value


class TrendingEntry(BaseModel):
    id: str
    search_term: str
    movie_id: int
    title: str
    count: int
    poster_url: str | None = None

    @classmethod
    def from_record(cls, record: SearchRecord) -> TrendingEntry:
        return cls(
            id=record.id,
            search_term=record.search_term,
            movie_id=record.movie_id,
            title=record.title,
            count=record.count,
            poster_url=record.poster_url,
        )


__all__ = [
    "CatalogItem",
    "NewSearchRecord",
    "SearchRecord",
    "TrendingEntry",
]
