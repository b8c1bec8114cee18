"""Reservation workflow of a property detail view.

One ``ReservationWorkflow`` lives as long as the view. It owns the date and
guest selection, re-runs the availability check whenever the dates change,
and walks one reservation attempt at a time through::

    IDLE -> AUTH_CHECK -> DATE_CHECK -> AVAILABILITY_GATE
         -> AWAITING_PAYMENT_CHOICE -> SUBMITTING -> SUCCESS | FAILED

A failed attempt returns to ``IDLE`` with the selected dates and guest count
untouched, so the guest can simply try again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Protocol

from shortlet.booking.availability import AvailabilityBackend, AvailabilityChecker
from shortlet.booking.creator import CREATE_FAILED_MESSAGE, BookingBackend, BookingCreator
from shortlet.booking.dates import DateGuestSelector, price_breakdown
from shortlet.booking.dispatcher import PaymentBackend, PaymentDispatcher
from shortlet.booking.errors import (
    AvailabilityConflictError,
    BookingWorkflowError,
    DateValidationError,
    PaymentSelectionError,
)
from shortlet.booking.models import (
    AvailabilityResult,
    BankTransferDetails,
    Navigation,
    NavigationKind,
    PaymentMethod,
    PriceBreakdown,
    ReservationResult,
)
from shortlet.booking.payment import PaymentMethodSelector
from shortlet.core.config import Settings
from shortlet.core.security import CurrentUser

logger = logging.getLogger(__name__)

_UNSET = object()


class WorkflowBackend(AvailabilityBackend, BookingBackend, PaymentBackend, Protocol):
    pass


class ReservationState(str, Enum):
    IDLE = "idle"
    AUTH_CHECK = "auth_check"
    DATE_CHECK = "date_check"
    AVAILABILITY_GATE = "availability_gate"
    AWAITING_PAYMENT_CHOICE = "awaiting_payment_choice"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ReserveOutcome:
    state: ReservationState
    navigation: Navigation | None = None


class ReservationWorkflow:
    def __init__(
        self,
        backend: WorkflowBackend,
        property_id: str,
        *,
        max_guests: int,
        nightly_rate: float = 0.0,
        bank_details: BankTransferDetails,
        token: str | None = None,
        login_path: str = "/login",
        bookings_path: str = "/dashboard/bookings",
        upload_proof_path: str = "/dashboard/bookings/{booking_id}/upload-proof",
        service_fee_rate: float = 0.1,
        redirect_delay: float = 0.1,
        cancel_unpaid_bookings: bool = True,
        today: Callable[[], date] = date.today,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.property_id = property_id
        self.nightly_rate = nightly_rate
        self.service_fee_rate = service_fee_rate
        self.login_path = login_path
        self.special_requests = ""

        self.selector = DateGuestSelector(
            max_guests, today=today, on_dates_changed=self._on_dates_changed
        )
        self.availability = AvailabilityChecker(backend, property_id, token=token)
        self.payment_selector = PaymentMethodSelector(bank_details)
        self.creator = BookingCreator(backend, token=token)
        self.dispatcher = PaymentDispatcher(
            backend,
            fallback_bank_details=bank_details,
            token=token,
            bookings_path=bookings_path,
            upload_proof_path=upload_proof_path,
            redirect_delay=redirect_delay,
            cancel_unpaid_bookings=cancel_unpaid_bookings,
            sleep=sleep,
        )

        self.state = ReservationState.IDLE
        self.history: list[ReservationState] = [ReservationState.IDLE]
        self.loading = False
        self.booking_error: str | None = None
        self.selected_method: PaymentMethod | None = None
        self.result: ReservationResult | None = None
        self._user: CurrentUser | None = None
        self._availability_task: asyncio.Task | None = None
        self._holding_checks = False
        self._dates_dirty = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        backend: WorkflowBackend,
        property_id: str,
        *,
        max_guests: int,
        nightly_rate: float = 0.0,
        token: str | None = None,
        **kwargs,
    ) -> ReservationWorkflow:
        return cls(
            backend,
            property_id,
            max_guests=max_guests,
            nightly_rate=nightly_rate,
            token=token,
            bank_details=BankTransferDetails(
                account_name=settings.bank_account_name,
                account_number=settings.bank_account_number,
                bank_name=settings.bank_name,
            ),
            login_path=settings.login_path,
            bookings_path=settings.bookings_path,
            upload_proof_path=settings.upload_proof_path,
            service_fee_rate=settings.service_fee_rate,
            redirect_delay=settings.payment_redirect_delay_seconds,
            cancel_unpaid_bookings=settings.cancel_unpaid_bookings,
            **kwargs,
        )

    # -- View state --

    @property
    def availability_error(self) -> str | None:
        return self.availability.error

    @property
    def can_reserve(self) -> bool:
        return not self.loading and not self.availability.blocking

    @property
    def price(self) -> PriceBreakdown | None:
        return price_breakdown(
            self.nightly_rate,
            self.selector.check_in,
            self.selector.check_out,
            self.service_fee_rate,
        )

    # -- Date/guest selection --

    async def select_dates(self, check_in=_UNSET, check_out=_UNSET) -> AvailabilityResult | None:
        """Update the dates and wait for the single availability check they trigger."""
        self._holding_checks = True
        try:
            if check_in is not _UNSET:
                self.selector.set_check_in(check_in)
            if check_out is not _UNSET:
                self.selector.set_check_out(check_out)
        finally:
            self._holding_checks = False
            if self._dates_dirty:
                self._dates_dirty = False
                self._schedule_availability_check()
        return await self.settle()

    def set_guests(self, count: int, *, clamp: bool = True) -> int:
        self.booking_error = None
        return self.selector.set_guests(count, clamp=clamp)

    async def settle(self) -> AvailabilityResult | None:
        """Wait for the availability check started by the latest date change."""
        while self._availability_task is not None:
            task = self._availability_task
            await asyncio.wait({task})
            if task is self._availability_task:
                self._availability_task = None
            if not task.cancelled():
                task.result()
        return self.availability.last_result

    async def recheck_availability(self) -> AvailabilityResult | None:
        if not self.selector.dates_ordered:
            return None
        return await self.availability.check(self.selector.check_in, self.selector.check_out)

    def _on_dates_changed(self, check_in: date | None, check_out: date | None) -> None:
        self.booking_error = None
        self.availability.invalidate()
        if self._holding_checks:
            self._dates_dirty = True
            return
        self._schedule_availability_check()

    def _schedule_availability_check(self) -> None:
        if self._availability_task is not None:
            self._availability_task.cancel()
            self._availability_task = None
        if not self.selector.dates_ordered:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._availability_task = loop.create_task(
            self.availability.check(self.selector.check_in, self.selector.check_out)
        )

    # -- Reservation attempt --

    def reserve(self, user: CurrentUser | None) -> ReserveOutcome:
        """Start a reservation attempt.

        Returns a login navigation for anonymous guests, otherwise opens the
        payment method selector. Raises ``DateValidationError`` or
        ``AvailabilityConflictError`` when the attempt cannot proceed; the
        workflow stays ``IDLE`` in every non-success case.
        """
        if self.loading:
            raise PaymentSelectionError("A reservation is already being processed.")

        self._enter(ReservationState.AUTH_CHECK)
        if user is None:
            self._enter(ReservationState.IDLE)
            return ReserveOutcome(
                state=ReservationState.IDLE,
                navigation=Navigation(kind=NavigationKind.IN_APP, url=self.login_path),
            )
        self._user = user

        self._enter(ReservationState.DATE_CHECK)
        try:
            self.selector.validate()
        except DateValidationError:
            self._enter(ReservationState.IDLE)
            raise

        self._enter(ReservationState.AVAILABILITY_GATE)
        if self.availability.blocking:
            self._enter(ReservationState.IDLE)
            raise AvailabilityConflictError(self.availability.error)

        self.payment_selector.open()
        self._enter(ReservationState.AWAITING_PAYMENT_CHOICE)
        return ReserveOutcome(state=ReservationState.AWAITING_PAYMENT_CHOICE)

    def expand_bank_details(self) -> BankTransferDetails:
        self._require_awaiting_choice()
        return self.payment_selector.expand_bank_details()

    async def choose_payment(self, method: PaymentMethod | str) -> ReservationResult:
        self._require_awaiting_choice()
        chosen = self.payment_selector.choose(method)
        return await self._submit(chosen)

    async def confirm_bank_transfer(self) -> ReservationResult:
        self._require_awaiting_choice()
        chosen = self.payment_selector.confirm_bank_transfer()
        return await self._submit(chosen)

    def cancel(self) -> None:
        """Close the payment selector; nothing has been submitted yet."""
        if self.state is not ReservationState.AWAITING_PAYMENT_CHOICE:
            return
        self.payment_selector.cancel()
        self._enter(ReservationState.IDLE)

    async def _submit(self, method: PaymentMethod) -> ReservationResult:
        self.payment_selector.dismiss()
        self.selected_method = method
        self.loading = True
        self.booking_error = None
        self._enter(ReservationState.SUBMITTING)
        try:
            request = self.selector.build_request(
                self.property_id, method, self.special_requests
            )
            created = await self.creator.create(request)
            result = await self.dispatcher.dispatch(method, created, self._user.email)
        except BookingWorkflowError as e:
            logger.warning(
                "Reservation for %s failed (%s): %s", self.property_id, method.value, e.message
            )
            self._fail(e.message)
            raise
        except Exception:
            logger.exception("Unexpected error during reservation for %s", self.property_id)
            self._fail(CREATE_FAILED_MESSAGE)
            raise
        finally:
            self.loading = False
            self.selected_method = None
            self.payment_selector.cancel()

        self.result = result
        self._enter(ReservationState.SUCCESS)
        return result

    def _fail(self, message: str) -> None:
        self.booking_error = message
        self._enter(ReservationState.FAILED)
        self._enter(ReservationState.IDLE)

    def _require_awaiting_choice(self) -> None:
        if self.state is not ReservationState.AWAITING_PAYMENT_CHOICE:
            raise PaymentSelectionError("Start a reservation before choosing a payment method.")

    def _enter(self, state: ReservationState) -> None:
        logger.debug("Reservation %s: %s -> %s", self.property_id, self.state.value, state.value)
        self.state = state
        self.history.append(state)
