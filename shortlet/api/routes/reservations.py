import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from shortlet.api import deps
from shortlet.booking.errors import (
    AvailabilityConflictError,
    BookingCreationError,
    DateValidationError,
    PaymentInitializationError,
    PaymentSelectionError,
)
from shortlet.booking.models import PaymentMethod, ReservationResult
from shortlet.booking.workflow import ReservationWorkflow
from shortlet.core.config import Settings, get_settings
from shortlet.core.security import CurrentUser
from shortlet.schemas.booking import (
    AvailabilityRequest,
    AvailabilityResponse,
    BankDetailsResponse,
    BankTransferResponse,
    NavigationResponse,
    ReservationCreate,
    ReservationResponse,
)
from shortlet.services.backend import BackendClient, BackendError
from shortlet.services.catalog import max_guests, parse_properties

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1.0/properties/{property_id}", tags=["reservations"])

LOGIN_REQUIRED_MESSAGE = "Please log in to make a booking"
CONFIRM_BANK_DETAILS_MESSAGE = "Confirm the bank transfer details before booking."


async def _load_workflow(
    backend: BackendClient,
    settings: Settings,
    property_id: str,
    token: str | None,
) -> ReservationWorkflow:
    try:
        row = await backend.get_property(property_id)
    except BackendError as e:
        raise deps.backend_http_error(e)

    prop = parse_properties([row])
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return ReservationWorkflow.from_settings(
        settings,
        backend,
        property_id,
        max_guests=max_guests(prop[0]),
        nightly_rate=prop[0].price,
        token=token,
    )


def _reservation_response(result: ReservationResult) -> ReservationResponse:
    bank_transfer = None
    if result.bank_transfer is not None:
        details = result.bank_transfer.details
        bank_transfer = BankTransferResponse(
            amount=result.bank_transfer.amount,
            account_name=details.account_name,
            account_number=details.account_number,
            bank_name=details.bank_name,
            transfer_reference=details.transfer_reference,
        )
    return ReservationResponse(
        booking_id=result.booking_id,
        payment_method=result.payment_method,
        navigation=NavigationResponse(
            kind=result.navigation.kind, url=result.navigation.url
        ),
        message=result.navigation.message,
        bank_transfer=bank_transfer,
        payment_reference=result.payment.reference if result.payment else None,
    )


@router.get("/bank-details", response_model=BankDetailsResponse)
async def get_bank_details(
    property_id: str = Depends(deps.validate_property_id),
    settings: Settings = Depends(get_settings),
):
    """Company account shown when the guest expands the bank transfer option."""
    return BankDetailsResponse(
        account_name=settings.bank_account_name,
        account_number=settings.bank_account_number,
        bank_name=settings.bank_name,
    )


@router.post("/availability", response_model=AvailabilityResponse)
async def check_availability(
    payload: AvailabilityRequest,
    property_id: str = Depends(deps.validate_property_id),
    user: CurrentUser | None = Depends(deps.get_optional_user),
    backend: BackendClient = Depends(deps.get_backend),
    settings: Settings = Depends(get_settings),
):
    """Advisory availability check for the selected stay."""
    if payload.check_out <= payload.check_in:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-out must be after check-in.",
        )

    workflow = await _load_workflow(
        backend, settings, property_id, user.token if user else None
    )
    result = await workflow.select_dates(payload.check_in, payload.check_out)
    return AvailabilityResponse(
        available=bool(result and result.available),
        error=workflow.availability_error,
        can_reserve=workflow.can_reserve,
    )


@router.post(
    "/reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_reservation(
    payload: ReservationCreate,
    property_id: str = Depends(deps.validate_property_id),
    user: CurrentUser | None = Depends(deps.get_optional_user),
    backend: BackendClient = Depends(deps.get_backend),
    settings: Settings = Depends(get_settings),
):
    """Run one reservation attempt: create the booking, then route its payment.

    Anonymous guests get a 401 carrying the login path to redirect to,
    before anything is asked of the backend.
    """
    if user is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": LOGIN_REQUIRED_MESSAGE, "redirect": settings.login_path},
        )

    workflow = await _load_workflow(backend, settings, property_id, user.token)
    workflow.special_requests = payload.special_requests
    await workflow.select_dates(payload.check_in, payload.check_out)
    workflow.set_guests(payload.guests, clamp=False)

    try:
        workflow.reserve(user)
        if payload.payment_method is PaymentMethod.BANK_TRANSFER:
            workflow.expand_bank_details()
            if not payload.bank_details_confirmed:
                workflow.cancel()
                raise PaymentSelectionError(CONFIRM_BANK_DETAILS_MESSAGE)
            result = await workflow.confirm_bank_transfer()
        else:
            result = await workflow.choose_payment(payload.payment_method)
    except (DateValidationError, PaymentSelectionError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except AvailabilityConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except (BookingCreationError, PaymentInitializationError) as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    logger.info(
        "Reservation %s created for property %s (%s)",
        result.booking_id,
        property_id,
        result.payment_method.value,
    )
    return _reservation_response(result)
