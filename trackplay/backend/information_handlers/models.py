from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class MediaType(str, Enum):
    """Normalized set of media categories exposed to the UI."""

    MOVIE = "movie"
    SHOW = "show"


class HistoryEntry(BaseModel):
    """One watched movie or episode, reshaped from a Trakt history record."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    type: MediaType
    watched_at: datetime


class RecommendationEntry(BaseModel):
    """A recommended movie or show; ``poster_url`` is filled in after lookup."""

    model_config = ConfigDict(frozen=True)

    id: int
    imdb_id: Optional[str] = None
    title: str
    year: Optional[int] = None
    type: MediaType
    rating: Optional[float] = None
    poster_url: Optional[str] = None


class RecommendationBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    movies: Sequence[RecommendationEntry] = Field(default_factory=list)
    shows: Sequence[RecommendationEntry] = Field(default_factory=list)
