"""
Input schemas for write operations.

The movie schemas have no averageRating, totalRatings or addedBy fields and
unknown keys are dropped during validation. Those columns are server-owned.
"""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, constr, field_validator

from models.movie import GENRES


Genre = Literal[GENRES]
CastMember = constr(strip_whitespace=True, max_length=100)

MOVIE_REQUIRED_FIELDS = (
    "title",
    "description",
    "director",
    "release_date",
    "duration",
    "language",
    "country",
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


class MovieCreate(_CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    director: str = Field(..., min_length=1, max_length=100)
    cast: List[CastMember] = Field(default_factory=list)
    genre: List[Genre] = Field(default_factory=list)
    release_date: date = Field(..., alias="releaseDate")
    duration: int = Field(..., ge=1, description="Runtime in minutes")
    language: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    poster: Optional[str] = Field(None, max_length=500)
    trailer: Optional[str] = Field(None, max_length=500)
    imdb_id: Optional[str] = Field(None, alias="imdbId", max_length=20)
    budget: Optional[float] = Field(None, ge=0)
    box_office: Optional[float] = Field(None, alias="boxOffice", ge=0)
    is_active: bool = Field(True, alias="isActive")
    featured: bool = False


class MovieUpdate(_CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    director: Optional[str] = Field(None, min_length=1, max_length=100)
    cast: Optional[List[CastMember]] = None
    genre: Optional[List[Genre]] = None
    release_date: Optional[date] = Field(None, alias="releaseDate")
    duration: Optional[int] = Field(None, ge=1)
    language: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    poster: Optional[str] = Field(None, max_length=500)
    trailer: Optional[str] = Field(None, max_length=500)
    imdb_id: Optional[str] = Field(None, alias="imdbId", max_length=20)
    budget: Optional[float] = Field(None, ge=0)
    box_office: Optional[float] = Field(None, alias="boxOffice", ge=0)
    is_active: Optional[bool] = Field(None, alias="isActive")
    featured: Optional[bool] = None

    @field_validator(
        *MOVIE_REQUIRED_FIELDS,
        "cast",
        "genre",
        "is_active",
        "featured",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value):
        # omitted means unchanged; explicit null is rejected
        if value is None:
            raise ValueError("cannot be null")
        return value


class RatingInput(_CamelModel):
    rating: int = Field(..., ge=1, le=10)
    review: Optional[str] = Field(None, max_length=1000)
    is_public: bool = Field(True, alias="isPublic")

    @field_validator("is_public", mode="before")
    @classmethod
    def default_visibility(cls, value):
        return True if value is None else value


def format_validation_error(error: ValidationError) -> str:
    """Flattens pydantic's error list into one human-readable message."""
    messages = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"])
        messages.append(f"{field}: {item['msg']}" if field else item["msg"])
    return ", ".join(messages)
