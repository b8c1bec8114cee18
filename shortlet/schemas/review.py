from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, field_validator

ReviewSort = Literal["recent", "helpful", "highest", "lowest"]


class ReviewAuthor(BaseModel):
    name: str
    image: str


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 10:
            raise ValueError("Please write a review with at least 10 characters")
        return value


class ReviewResponse(BaseModel):
    id: int
    user: ReviewAuthor
    rating: int
    comment: str
    date: dt.date
    helpful: int


class RatingBar(BaseModel):
    rating: int
    count: int
    percentage: float


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    total: int
    average_rating: float
    breakdown: list[RatingBar]
