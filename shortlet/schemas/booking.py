from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from shortlet.booking.models import NavigationKind, PaymentMethod


class AvailabilityRequest(BaseModel):
    check_in: date
    check_out: date


class AvailabilityResponse(BaseModel):
    available: bool
    error: str | None = None
    can_reserve: bool


class ReservationCreate(BaseModel):
    check_in: date | None = None
    check_out: date | None = None
    guests: int = Field(1, ge=1)
    special_requests: str = ""
    payment_method: PaymentMethod
    # Bank transfers must be confirmed after the account details were shown.
    bank_details_confirmed: bool = False


class NavigationResponse(BaseModel):
    kind: NavigationKind
    url: str


class BankTransferResponse(BaseModel):
    amount: float | None = None
    account_name: str
    account_number: str
    bank_name: str
    transfer_reference: str = ""


class ReservationResponse(BaseModel):
    booking_id: str
    payment_method: PaymentMethod
    navigation: NavigationResponse
    message: str | None = None
    bank_transfer: BankTransferResponse | None = None
    payment_reference: str | None = None


class BankDetailsResponse(BaseModel):
    account_name: str
    account_number: str
    bank_name: str
    note: str = (
        "After transfer, upload proof of payment in your dashboard. "
        "Booking will be confirmed after verification."
    )


class PaymentVerifyRequest(BaseModel):
    reference: str = Field(..., min_length=1)
