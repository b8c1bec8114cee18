from __future__ import annotations

import copy
from collections import OrderedDict
from datetime import date
from typing import Any

MAX_TRACKED_PROPERTIES = 500

DEFAULT_REVIEWER_IMAGE = "https://images.unsplash.com/photo-1535713875002-d1d0cf377fde?w=150"

SAMPLE_REVIEWS: list[dict[str, Any]] = [
    {
        "id": 1,
        "user": {
            "name": "Michael Chen",
            "image": "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=150",
        },
        "rating": 5,
        "comment": (
            "Amazing apartment! The location was perfect and the host was very responsive. "
            "The apartment was clean and had everything we needed for our stay."
        ),
        "date": date(2024, 1, 15),
        "helpful": 12,
    },
    {
        "id": 2,
        "user": {
            "name": "Sarah Williams",
            "image": "https://images.unsplash.com/photo-1494790108755-2616b612b786?w=150",
        },
        "rating": 4,
        "comment": (
            "Great value for money. The apartment was spacious and well-maintained. "
            "Only minor issue was the Wi-Fi was a bit slow in the evenings."
        ),
        "date": date(2024, 1, 10),
        "helpful": 8,
    },
    {
        "id": 3,
        "user": {
            "name": "David Johnson",
            "image": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=150",
        },
        "rating": 5,
        "comment": (
            "Perfect stay! The apartment exceeded our expectations. "
            "The view was stunning and everything was exactly as described."
        ),
        "date": date(2024, 1, 5),
        "helpful": 15,
    },
]

_SORT_KEYS = {
    "recent": (lambda review: review["date"], True),
    "helpful": (lambda review: review["helpful"], True),
    "highest": (lambda review: review["rating"], True),
    "lowest": (lambda review: review["rating"], False),
}


def sort_reviews(reviews: list[dict], sort_by: str = "recent") -> list[dict]:
    if sort_by not in _SORT_KEYS:
        return list(reviews)
    key, reverse = _SORT_KEYS[sort_by]
    return sorted(reviews, key=key, reverse=reverse)


def rating_breakdown(reviews: list[dict]) -> list[dict]:
    total = len(reviews)
    bars = []
    for rating in (5, 4, 3, 2, 1):
        count = sum(1 for review in reviews if review["rating"] == rating)
        percentage = round(count / total * 100, 1) if total else 0.0
        bars.append({"rating": rating, "count": count, "percentage": percentage})
    return bars


def average_rating(reviews: list[dict]) -> float:
    if not reviews:
        return 0.0
    return round(sum(review["rating"] for review in reviews) / len(reviews), 1)


class ReviewBoard:
    """Reviews per property, kept in memory for the lifetime of the process.

    Every property starts from the sample reviews. At most ``max_properties``
    boards are kept; the least recently used one is dropped first.
    """

    def __init__(
        self,
        seed: list[dict] | None = None,
        *,
        max_properties: int = MAX_TRACKED_PROPERTIES,
    ):
        self._seed = SAMPLE_REVIEWS if seed is None else seed
        self.max_properties = max(max_properties, 1)
        self._reviews: OrderedDict[str, list[dict]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._reviews)

    def _for_property(self, property_id: str) -> list[dict]:
        if property_id in self._reviews:
            self._reviews.move_to_end(property_id)
            return self._reviews[property_id]
        while len(self._reviews) >= self.max_properties:
            self._reviews.popitem(last=False)
        self._reviews[property_id] = copy.deepcopy(self._seed)
        return self._reviews[property_id]

    def list(self, property_id: str, sort_by: str = "recent") -> list[dict]:
        return sort_reviews(self._for_property(property_id), sort_by)

    def add(
        self,
        property_id: str,
        *,
        author_name: str,
        rating: int,
        comment: str,
        author_image: str | None = None,
        today: date | None = None,
    ) -> dict:
        reviews = self._for_property(property_id)
        review = {
            "id": max((r["id"] for r in reviews), default=0) + 1,
            "user": {"name": author_name, "image": author_image or DEFAULT_REVIEWER_IMAGE},
            "rating": rating,
            "comment": comment.strip(),
            "date": today or date.today(),
            "helpful": 0,
        }
        reviews.insert(0, review)
        return review

    def mark_helpful(self, property_id: str, review_id: int) -> dict | None:
        for review in self._for_property(property_id):
            if review["id"] == review_id:
                review["helpful"] += 1
                return review
        return None
