from fastapi import APIRouter, Depends, HTTPException, status

from shortlet.api import deps
from shortlet.core.security import CurrentUser
from shortlet.schemas.review import ReviewCreate, ReviewListResponse, ReviewResponse, ReviewSort
from shortlet.services.reviews import ReviewBoard, average_rating, rating_breakdown

router = APIRouter(prefix="/v1.0/properties/{property_id}/reviews", tags=["reviews"])


@router.get("", response_model=ReviewListResponse)
async def list_reviews(
    property_id: str = Depends(deps.validate_property_id),
    sort: ReviewSort = "recent",
    board: ReviewBoard = Depends(deps.get_review_board),
):
    """Reviews of a property with the rating summary."""
    reviews = board.list(property_id, sort)
    return ReviewListResponse(
        items=reviews,
        total=len(reviews),
        average_rating=average_rating(reviews),
        breakdown=rating_breakdown(reviews),
    )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def add_review(
    payload: ReviewCreate,
    property_id: str = Depends(deps.validate_property_id),
    current_user: CurrentUser = Depends(deps.get_current_user),
    board: ReviewBoard = Depends(deps.get_review_board),
):
    return board.add(
        property_id,
        author_name=current_user.display_name,
        rating=payload.rating,
        comment=payload.comment,
    )


@router.post("/{review_id}/helpful", response_model=ReviewResponse)
async def mark_review_helpful(
    review_id: int,
    property_id: str = Depends(deps.validate_property_id),
    board: ReviewBoard = Depends(deps.get_review_board),
):
    review = board.mark_helpful(property_id, review_id)
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review
