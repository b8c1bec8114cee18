from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from shortlet.core.security import CurrentUser, user_from_token
from shortlet.services.backend import BackendClient, BackendError, is_object_id
from shortlet.services.reviews import ReviewBoard


def validate_property_id(property_id: str) -> str:
    """Validate that property_id is a well-formed 24-hex ObjectId.

    Raises HTTP 400 if not, before any backend call is made.
    """
    if not property_id or property_id == "undefined":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Property ID is required",
        )
    if not is_object_id(property_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid property ID format",
        )
    return property_id


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def backend_http_error(e: BackendError) -> HTTPException:
    """Map a failed backend call onto the status the browser should see."""
    if e.status_code in (
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
    ):
        return HTTPException(status_code=e.status_code, detail=e.message)
    if e.status_code is None:
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_review_board(request: Request) -> ReviewBoard:
    return request.app.state.reviews


async def get_optional_user(token: str | None = Depends(oauth2_scheme)) -> CurrentUser | None:
    """Current guest from the forwarded bearer token, or None when anonymous."""
    if not token:
        return None
    try:
        return user_from_token(token)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(user: CurrentUser | None = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
