from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class PaymentMethod(str, Enum):
    ONLINE_GATEWAY = "paystack"
    BANK_TRANSFER = "bank_transfer"
    PAY_ONSITE = "onsite"


class NavigationKind(str, Enum):
    EXTERNAL = "external"  # same-tab browser redirect
    IN_APP = "in_app"


@dataclass(frozen=True)
class Navigation:
    kind: NavigationKind
    url: str
    message: str | None = None


@dataclass(frozen=True)
class BookingRequest:
    property_id: str
    check_in: date
    check_out: date
    guests: int
    payment_method: PaymentMethod
    special_requests: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "propertyId": self.property_id,
            "checkIn": self.check_in.isoformat(),
            "checkOut": self.check_out.isoformat(),
            "guests": self.guests,
            "specialRequests": self.special_requests,
            "paymentMethod": self.payment_method.value,
        }


@dataclass(frozen=True)
class AvailabilityResult:
    property_id: str
    check_in: date
    check_out: date
    available: bool
    error: str | None = None


@dataclass(frozen=True)
class PaymentInitResult:
    authorization_url: str
    reference: str | None = None
    access_code: str | None = None


@dataclass(frozen=True)
class BankTransferDetails:
    account_name: str
    account_number: str
    bank_name: str
    transfer_reference: str = ""


@dataclass(frozen=True)
class BankTransferInstructions:
    amount: float | None
    details: BankTransferDetails

    def summary(self) -> str:
        amount = f"₦{self.amount:,.0f}" if self.amount is not None else "the booking total"
        return (
            "Booking created successfully!\n\n"
            f"Please transfer {amount} to:\n"
            f"Account Name: {self.details.account_name}\n"
            f"Account Number: {self.details.account_number}\n"
            f"Bank: {self.details.bank_name}\n"
            f"Reference: {self.details.transfer_reference}\n\n"
            "After transfer, upload proof of payment in your dashboard."
        )


@dataclass(frozen=True)
class PriceBreakdown:
    nightly_rate: float
    nights: int
    subtotal: float
    service_fee: float
    total: float


@dataclass
class ReservationResult:
    """Terminal outcome of a successful reservation attempt."""

    booking_id: str
    payment_method: PaymentMethod
    navigation: Navigation
    bank_transfer: BankTransferInstructions | None = None
    payment: PaymentInitResult | None = None
    raw_booking: dict[str, Any] = field(default_factory=dict, repr=False)
