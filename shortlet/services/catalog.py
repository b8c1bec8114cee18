from __future__ import annotations

import logging
import math
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Any

from pydantic import ValidationError

from shortlet.booking.dates import min_check_out_date, price_breakdown, tomorrow
from shortlet.schemas.property import Amenity, Property

logger = logging.getLogger(__name__)

DEFAULT_PROPERTY_IMAGE = "/default-property.jpg"
DEFAULT_HOST_IMAGE = "https://images.unsplash.com/photo-1494790108755-2616b612b786?w=150"
DEFAULT_HOUSE_RULES = [
    "No smoking",
    "No pets",
    "No parties or events",
    "Check-in after 2:00 PM",
    "Check-out before 11:00 AM",
]
DEFAULT_MAX_PRICE = 500

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def parse_properties(rows: list[dict]) -> list[Property]:
    """Validate backend rows, skipping the ones that are not usable properties."""
    properties = []
    for row in rows:
        try:
            properties.append(Property.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping malformed property %r: %s", row.get("_id"), e)
    return properties


def main_image(prop: Property) -> str:
    for image in prop.images:
        if image.is_main:
            return image.url
    if prop.images:
        return prop.images[0].url
    return DEFAULT_PROPERTY_IMAGE


def _created_at(prop: Property) -> datetime:
    if prop.created_at is None:
        return _EPOCH
    if prop.created_at.tzinfo is None:
        return prop.created_at.replace(tzinfo=timezone.utc)
    return prop.created_at


def observed_price_range(properties: list[Property]) -> tuple[float, float] | None:
    if not properties:
        return None
    prices = [prop.price for prop in properties]
    return float(math.floor(min(prices))), float(math.ceil(max(prices)))


def filter_properties(
    properties: list[Property],
    *,
    search: str = "",
    location: str = "",
    min_price: float | None = None,
    max_price: float | None = None,
    types: list[str] | None = None,
    amenities: list[str] | None = None,
) -> list[Property]:
    search = search.strip().lower()
    location = location.strip().lower()
    types = types or []
    amenities = amenities or []

    results = []
    for prop in properties:
        if search and search not in prop.title.lower():
            continue
        if location and location not in prop.location.lower():
            continue
        if min_price is not None and prop.price < min_price:
            continue
        if max_price is not None and prop.price > max_price:
            continue
        if types and prop.type not in types:
            continue
        if amenities and not set(amenities) <= prop.amenity_ids:
            continue
        results.append(prop)
    return results


def sort_properties(properties: list[Property], sort_by: str = "recommended") -> list[Property]:
    if sort_by == "price-low":
        return sorted(properties, key=lambda p: p.price)
    if sort_by == "price-high":
        return sorted(properties, key=lambda p: p.price, reverse=True)
    if sort_by == "rating":
        return sorted(properties, key=lambda p: p.rating or 0, reverse=True)
    if sort_by == "bookings":
        return sorted(properties, key=lambda p: p.total_bookings or 0, reverse=True)
    return sorted(properties, key=_created_at, reverse=True)


def count_active_filters(
    *,
    search: str = "",
    location: str = "",
    min_price: float | None = None,
    max_price: float | None = None,
    types: list[str] | None = None,
    amenities: list[str] | None = None,
) -> int:
    price_filtered = (min_price or 0) > 0 or (
        max_price is not None and max_price < DEFAULT_MAX_PRICE
    )
    return (
        int(bool(search.strip()))
        + int(bool(location.strip()))
        + int(price_filtered)
        + len(types or [])
        + len(amenities or [])
    )


def property_summary(prop: Property, amenity_names: dict[str, str]) -> dict[str, Any]:
    names = []
    for amenity in prop.amenities:
        if isinstance(amenity, Amenity):
            names.append(amenity.name)
        elif amenity in amenity_names:
            names.append(amenity_names[amenity])
    return {
        "id": prop.id,
        "title": prop.title,
        "location": prop.location,
        "price": prop.price,
        "image": main_image(prop),
        "rating": prop.rating or 0,
        "total_bookings": prop.total_bookings or 0,
        "type": prop.type,
        "amenities": names,
    }


def max_guests(prop: Property) -> int:
    return (prop.specifications.max_guests if prop.specifications else None) or 1


def property_detail(
    prop: Property,
    *,
    today: date | None = None,
    check_in: date | None = None,
    check_out: date | None = None,
    service_fee_rate: float = 0.1,
) -> dict[str, Any]:
    owner = prop.owner
    first_name = (owner.first_name if owner else None) or "Host"
    last_name = (owner.last_name if owner else None) or ""
    specs = prop.specifications
    bedrooms = specs.bedrooms if specs else 0
    breakdown = price_breakdown(prop.price, check_in, check_out, service_fee_rate)

    return {
        "id": prop.id,
        "title": prop.title,
        "location": prop.location,
        "description": prop.description,
        "price": prop.price,
        "type": prop.type,
        "main_image": main_image(prop),
        "images": [image.url for image in prop.images],
        "host": {
            "name": f"{first_name} {last_name}".strip(),
            "image": (owner.profile_image_path if owner else None) or DEFAULT_HOST_IMAGE,
            "joined": "2022",
            "rating": 4.9,
            "properties": 12,
        },
        "specs": {
            "guests": max_guests(prop),
            "bedrooms": bedrooms,
            "beds": bedrooms,
            "bathrooms": specs.bathrooms if specs else 0,
        },
        "amenities": [a for a in prop.amenities if isinstance(a, Amenity)],
        "house_rules": list(DEFAULT_HOUSE_RULES),
        "min_check_in": tomorrow(today),
        "min_check_out": min_check_out_date(check_in, today),
        "price_breakdown": asdict(breakdown) if breakdown else None,
    }