from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, NoReturn, Protocol

from shortlet.booking.creator import CreatedBooking
from shortlet.booking.errors import PaymentInitializationError
from shortlet.booking.models import (
    BankTransferDetails,
    BankTransferInstructions,
    Navigation,
    NavigationKind,
    PaymentInitResult,
    PaymentMethod,
    ReservationResult,
)
from shortlet.services.backend import BackendError

logger = logging.getLogger(__name__)

GATEWAY_UNAVAILABLE_MESSAGE = "Payment gateway is currently unavailable. Please try again."
ONSITE_CONFIRMATION_MESSAGE = (
    "Booking created successfully! Please proceed to the property for check-in and payment."
)
UNPAID_CANCELLATION_REASON = "Payment initialization failed"


class PaymentBackend(Protocol):
    async def initialize_payment(
        self, booking_id: str, email: str, *, token: str | None = None
    ) -> dict: ...

    async def cancel_booking(
        self, booking_id: str, reason: str, *, token: str | None = None
    ) -> Any: ...


def _to_amount(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def bank_transfer_details(
    response: dict,
    record: dict,
    fallback: BankTransferDetails,
) -> BankTransferDetails:
    """Account details from the booking response, else the company account."""
    provided = response.get("bankDetails")
    if isinstance(provided, dict) and provided.get("accountNumber"):
        return BankTransferDetails(
            account_name=str(provided.get("accountName") or fallback.account_name),
            account_number=str(provided["accountNumber"]),
            bank_name=str(provided.get("bankName") or fallback.bank_name),
            transfer_reference=str(provided.get("transferReference") or ""),
        )

    transfer = record.get("bankTransferDetails")
    reference = transfer.get("transferReference") if isinstance(transfer, dict) else None
    return BankTransferDetails(
        account_name=fallback.account_name,
        account_number=fallback.account_number,
        bank_name=fallback.bank_name,
        transfer_reference=str(reference or fallback.transfer_reference),
    )


class PaymentDispatcher:
    """Finishes a reservation once the booking exists, per payment method."""

    def __init__(
        self,
        backend: PaymentBackend,
        *,
        fallback_bank_details: BankTransferDetails,
        token: str | None = None,
        bookings_path: str = "/dashboard/bookings",
        upload_proof_path: str = "/dashboard/bookings/{booking_id}/upload-proof",
        redirect_delay: float = 0.1,
        cancel_unpaid_bookings: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._backend = backend
        self.fallback_bank_details = fallback_bank_details
        self.token = token
        self.bookings_path = bookings_path
        self.upload_proof_path = upload_proof_path
        self.redirect_delay = redirect_delay
        self.cancel_unpaid_bookings = cancel_unpaid_bookings
        self._sleep = sleep

    async def dispatch(
        self,
        method: PaymentMethod,
        created: CreatedBooking,
        email: str,
    ) -> ReservationResult:
        if method is PaymentMethod.ONLINE_GATEWAY:
            return await self._pay_online(created, email)
        if method is PaymentMethod.BANK_TRANSFER:
            return self._bank_transfer(created)
        if method is PaymentMethod.PAY_ONSITE:
            return self._pay_onsite(created)
        raise ValueError(f"Unsupported payment method: {method!r}")

    async def _pay_online(self, created: CreatedBooking, email: str) -> ReservationResult:
        try:
            data = await self._backend.initialize_payment(
                created.booking_id, email, token=self.token
            )
        except BackendError as e:
            logger.warning(
                "Payment initialization failed for booking %s: %s", created.booking_id, e.message
            )
            await self._fail_unpaid(created.booking_id)

        authorization_url = (data or {}).get("authorization_url")
        if not authorization_url:
            logger.warning(
                "Payment initialization for booking %s returned no authorization_url",
                created.booking_id,
            )
            await self._fail_unpaid(created.booking_id)

        payment = PaymentInitResult(
            authorization_url=authorization_url,
            reference=data.get("reference"),
            access_code=data.get("access_code"),
        )
        if self.redirect_delay:
            await self._sleep(self.redirect_delay)
        logger.info("Redirecting booking %s to the payment gateway", created.booking_id)
        return ReservationResult(
            booking_id=created.booking_id,
            payment_method=PaymentMethod.ONLINE_GATEWAY,
            navigation=Navigation(kind=NavigationKind.EXTERNAL, url=authorization_url),
            payment=payment,
            raw_booking=created.response,
        )

    def _bank_transfer(self, created: CreatedBooking) -> ReservationResult:
        record = created.record
        instructions = BankTransferInstructions(
            amount=_to_amount(record.get("totalAmount")),
            details=bank_transfer_details(
                created.response, record, self.fallback_bank_details
            ),
        )
        logger.info(
            "Booking %s awaiting bank transfer (reference %r)",
            created.booking_id,
            instructions.details.transfer_reference,
        )
        return ReservationResult(
            booking_id=created.booking_id,
            payment_method=PaymentMethod.BANK_TRANSFER,
            navigation=Navigation(
                kind=NavigationKind.IN_APP,
                url=self.upload_proof_path.format(booking_id=created.booking_id),
                message=instructions.summary(),
            ),
            bank_transfer=instructions,
            raw_booking=created.response,
        )

    def _pay_onsite(self, created: CreatedBooking) -> ReservationResult:
        logger.info("Booking %s will be settled on site", created.booking_id)
        return ReservationResult(
            booking_id=created.booking_id,
            payment_method=PaymentMethod.PAY_ONSITE,
            navigation=Navigation(
                kind=NavigationKind.IN_APP,
                url=self.bookings_path,
                message=ONSITE_CONFIRMATION_MESSAGE,
            ),
            raw_booking=created.response,
        )

    async def _fail_unpaid(self, booking_id: str) -> NoReturn:
        # Booking and payment are not transactional: the booking already exists here.
        cancelled = False
        if self.cancel_unpaid_bookings:
            try:
                await self._backend.cancel_booking(
                    booking_id, UNPAID_CANCELLATION_REASON, token=self.token
                )
                cancelled = True
                logger.warning("Cancelled unpaid booking %s", booking_id)
            except BackendError as e:
                logger.warning("Could not cancel unpaid booking %s: %s", booking_id, e.message)

        if cancelled:
            detail = "Your unpaid booking has been cancelled."
        else:
            detail = (
                f"Booking {booking_id} was created but is not paid yet; "
                "you can retry payment from your bookings."
            )
        raise PaymentInitializationError(
            f"{GATEWAY_UNAVAILABLE_MESSAGE} {detail}",
            booking_id=booking_id,
            booking_cancelled=cancelled,
        )
