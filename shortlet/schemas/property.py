from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PropertySort = Literal["recommended", "price-low", "price-high", "rating", "bookings"]


class Amenity(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    name: str
    description: str | None = None
    icon: str | None = None
    category: str | None = None


class AmenityListResponse(BaseModel):
    items: list[Amenity]


class PropertyImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    is_main: bool = Field(False, alias="isMain")
    order: int = 0


class PropertyOwner(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(None, alias="_id")
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    profile_image_path: str | None = Field(None, alias="profileImagePath")


class PropertySpecifications(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    max_guests: int = Field(1, alias="maxGuests")
    bedrooms: int = 0
    bathrooms: int = 0
    square_feet: int | None = Field(None, alias="squareFeet")


class Property(BaseModel):
    """A property as returned by the backend (Mongo-style ``_id`` keys)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    title: str = ""
    location: str = ""
    price: float = 0
    images: list[PropertyImage] = []
    rating: float | None = 0
    total_bookings: int | None = Field(0, alias="totalBookings")
    description: str | None = None
    owner: PropertyOwner | None = None
    amenities: list[Amenity | str] = []
    specifications: PropertySpecifications | None = None
    type: str | None = None
    status: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")

    @property
    def amenity_ids(self) -> set[str]:
        return {a.id if isinstance(a, Amenity) else a for a in self.amenities}


class PropertySummary(BaseModel):
    id: str
    title: str
    location: str
    price: float
    image: str
    rating: float
    total_bookings: int
    type: str | None = None
    amenities: list[str] = []


class PropertySearchResponse(BaseModel):
    items: list[PropertySummary]
    total: int
    price_range: tuple[float, float] | None = None
    active_filters: int = 0


class HostCard(BaseModel):
    name: str
    image: str
    joined: str
    rating: float
    properties: int


class PropertySpecs(BaseModel):
    guests: int
    bedrooms: int
    beds: int
    bathrooms: int


class PriceBreakdownResponse(BaseModel):
    nightly_rate: float
    nights: int
    subtotal: float
    service_fee: float
    total: float


class PropertyDetailResponse(BaseModel):
    id: str
    title: str
    location: str
    description: str | None = None
    price: float
    type: str | None = None
    main_image: str
    images: list[str]
    host: HostCard
    specs: PropertySpecs
    amenities: list[Amenity]
    house_rules: list[str]
    min_check_in: date
    min_check_out: date
    price_breakdown: PriceBreakdownResponse | None = None
