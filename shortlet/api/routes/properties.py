from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from shortlet.api import deps
from shortlet.core.config import Settings, get_settings
from shortlet.schemas.property import (
    Amenity,
    AmenityListResponse,
    PropertyDetailResponse,
    PropertySearchResponse,
    PropertySort,
)
from shortlet.services.backend import BackendClient, BackendError
from shortlet.services.catalog import (
    count_active_filters,
    filter_properties,
    observed_price_range,
    parse_properties,
    property_detail,
    property_summary,
    sort_properties,
)

router = APIRouter(prefix="/v1.0", tags=["properties"])


@router.get("/amenities", response_model=AmenityListResponse)
async def list_amenities(backend: BackendClient = Depends(deps.get_backend)):
    """List amenities available as search filters."""
    try:
        rows = await backend.list_amenities(limit=100)
    except BackendError as e:
        raise deps.backend_http_error(e)
    return AmenityListResponse(items=[Amenity.model_validate(row) for row in rows])


@router.get("/properties", response_model=PropertySearchResponse)
async def search_properties(
    search: str = "",
    location: str = "",
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    types: list[str] = Query([]),
    amenities: list[str] = Query([]),
    sort: PropertySort = "recommended",
    backend: BackendClient = Depends(deps.get_backend),
):
    """Search active properties with the listing page filters."""
    try:
        amenity_rows = await backend.list_amenities(limit=100)
        rows = await backend.list_properties(limit=50, status="active")
    except BackendError as e:
        raise deps.backend_http_error(e)

    amenity_names = {
        row["_id"]: row.get("name", "") for row in amenity_rows if isinstance(row, dict) and "_id" in row
    }
    properties = parse_properties(rows)
    matches = filter_properties(
        properties,
        search=search,
        location=location,
        min_price=min_price,
        max_price=max_price,
        types=types,
        amenities=amenities,
    )
    return PropertySearchResponse(
        items=[property_summary(prop, amenity_names) for prop in sort_properties(matches, sort)],
        total=len(matches),
        price_range=observed_price_range(properties),
        active_filters=count_active_filters(
            search=search,
            location=location,
            min_price=min_price,
            max_price=max_price,
            types=types,
            amenities=amenities,
        ),
    )


@router.get("/properties/{property_id}", response_model=PropertyDetailResponse)
async def get_property(
    property_id: str = Depends(deps.validate_property_id),
    check_in: date | None = None,
    check_out: date | None = None,
    backend: BackendClient = Depends(deps.get_backend),
    settings: Settings = Depends(get_settings),
):
    """Property detail page, with a price breakdown once both dates are chosen."""
    try:
        row = await backend.get_property(property_id)
    except BackendError as e:
        raise deps.backend_http_error(e)

    prop = parse_properties([row])
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return property_detail(
        prop[0],
        check_in=check_in,
        check_out=check_out,
        service_fee_rate=settings.service_fee_rate,
    )
