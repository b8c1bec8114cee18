from fastapi import APIRouter, Depends

from shortlet.api import deps
from shortlet.core.security import CurrentUser
from shortlet.schemas.booking import PaymentVerifyRequest
from shortlet.services.backend import BackendClient, BackendError

router = APIRouter(prefix="/v1.0/bookings", tags=["bookings"])


@router.get("")
async def list_my_bookings(
    current_user: CurrentUser = Depends(deps.get_current_user),
    backend: BackendClient = Depends(deps.get_backend),
):
    """Bookings of the signed-in guest, as the backend returns them."""
    try:
        rows = await backend.get_user_bookings(token=current_user.token)
    except BackendError as e:
        raise deps.backend_http_error(e)
    return {"items": rows, "total": len(rows)}


@router.post("/verify-payment")
async def verify_payment(
    payload: PaymentVerifyRequest,
    current_user: CurrentUser = Depends(deps.get_current_user),
    backend: BackendClient = Depends(deps.get_backend),
):
    """Verify a gateway payment after the guest returns from the payment page."""
    try:
        return await backend.verify_payment(payload.reference, token=current_user.token)
    except BackendError as e:
        raise deps.backend_http_error(e)
