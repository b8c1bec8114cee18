from __future__ import annotations

import asyncio
from datetime import date

import pytest

from shortlet.booking.availability import NOT_AVAILABLE_MESSAGE
from shortlet.booking.errors import (
    AvailabilityConflictError,
    BookingCreationError,
    DateValidationError,
    PaymentInitializationError,
    PaymentSelectionError,
)
from shortlet.booking.models import BankTransferDetails, NavigationKind, PaymentMethod
from shortlet.booking.workflow import ReservationState, ReservationWorkflow
from shortlet.core.security import CurrentUser
from shortlet.services.backend import BackendError
from shortlet.tests.fakes import BOOKING_ID, PROPERTY_ID, FakeBackend, GatedBackend

TODAY = date(2026, 3, 1)
CHECK_IN = date(2026, 3, 10)
CHECK_OUT = date(2026, 3, 12)
GUEST = CurrentUser(id="user-1", email="guest@example.com", token="tok")
BANK = BankTransferDetails(
    account_name="Hols Apartments Ltd", account_number="0900408855", bank_name="GT Bank"
)


def _run(coro):
    return asyncio.run(coro)


def _workflow(backend: FakeBackend, **kwargs) -> ReservationWorkflow:
    async def no_sleep(_delay):
        return None

    return ReservationWorkflow(
        backend,
        PROPERTY_ID,
        max_guests=4,
        nightly_rate=120.0,
        bank_details=BANK,
        token="tok",
        today=lambda: TODAY,
        sleep=no_sleep,
        **kwargs,
    )


def test_available_stay_paid_on_site_succeeds():
    backend = FakeBackend(available=True)
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        workflow.set_guests(2)
        outcome = workflow.reserve(GUEST)
        assert outcome.state is ReservationState.AWAITING_PAYMENT_CHOICE
        assert workflow.payment_selector.is_open
        return await workflow.choose_payment(PaymentMethod.PAY_ONSITE)

    result = _run(scenario())

    assert result.booking_id == BOOKING_ID
    assert result.navigation.kind is NavigationKind.IN_APP
    assert result.navigation.url == "/dashboard/bookings"
    assert workflow.state is ReservationState.SUCCESS
    assert workflow.history == [
        ReservationState.IDLE,
        ReservationState.AUTH_CHECK,
        ReservationState.DATE_CHECK,
        ReservationState.AVAILABILITY_GATE,
        ReservationState.AWAITING_PAYMENT_CHOICE,
        ReservationState.SUBMITTING,
        ReservationState.SUCCESS,
    ]
    [(_, payload, token)] = backend.calls_to("create_booking")
    assert payload["guests"] == 2
    assert payload["paymentMethod"] == "onsite"
    assert token == "tok"
    assert workflow.loading is False


def test_unavailable_stay_never_creates_a_booking():
    backend = FakeBackend(available=False)
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        assert workflow.availability_error == NOT_AVAILABLE_MESSAGE
        assert workflow.can_reserve is False
        with pytest.raises(AvailabilityConflictError):
            workflow.reserve(GUEST)

    _run(scenario())

    assert workflow.state is ReservationState.IDLE
    assert backend.calls_to("create_booking") == []


def test_inverted_dates_fail_before_any_network_call():
    backend = FakeBackend()
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_OUT, CHECK_IN)
        with pytest.raises(DateValidationError, match="Check-out must be after check-in"):
            workflow.reserve(GUEST)

    _run(scenario())

    assert backend.calls == []
    assert workflow.state is ReservationState.IDLE


def test_anonymous_guest_is_sent_to_login():
    backend = FakeBackend()
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        return workflow.reserve(None)

    outcome = _run(scenario())

    assert outcome.state is ReservationState.IDLE
    assert outcome.navigation.url == "/login"
    assert workflow.payment_selector.is_open is False
    assert backend.calls_to("create_booking") == []


def test_cancelling_payment_choice_creates_nothing():
    backend = FakeBackend()
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        workflow.reserve(GUEST)
        workflow.cancel()

    _run(scenario())

    assert workflow.state is ReservationState.IDLE
    assert backend.calls_to("create_booking") == []


def test_creation_failure_keeps_selection_for_retry():
    backend = FakeBackend(booking=BackendError("Booking creation failed", 500))
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        workflow.set_guests(3)
        workflow.reserve(GUEST)
        with pytest.raises(BookingCreationError):
            await workflow.choose_payment(PaymentMethod.PAY_ONSITE)

    _run(scenario())

    assert workflow.state is ReservationState.IDLE
    assert ReservationState.FAILED in workflow.history
    assert workflow.booking_error == "Booking creation failed"
    assert workflow.selector.check_in == CHECK_IN
    assert workflow.selector.check_out == CHECK_OUT
    assert workflow.selector.guests == 3
    assert workflow.can_reserve is True
    assert workflow.payment_selector.is_open is False


def test_changing_dates_clears_booking_error():
    backend = FakeBackend(booking=BackendError("Booking creation failed", 500))
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        workflow.reserve(GUEST)
        with pytest.raises(BookingCreationError):
            await workflow.choose_payment(PaymentMethod.PAY_ONSITE)
        await workflow.select_dates(check_out=date(2026, 3, 13))

    _run(scenario())

    assert workflow.booking_error is None
    assert len(backend.calls_to("check_availability")) == 2


def test_bank_transfer_requires_expanded_details():
    backend = FakeBackend()
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        workflow.reserve(GUEST)
        with pytest.raises(PaymentSelectionError):
            await workflow.confirm_bank_transfer()
        assert workflow.state is ReservationState.AWAITING_PAYMENT_CHOICE
        workflow.expand_bank_details()
        return await workflow.confirm_bank_transfer()

    result = _run(scenario())

    assert result.payment_method is PaymentMethod.BANK_TRANSFER
    assert result.navigation.url == f"/dashboard/bookings/{BOOKING_ID}/upload-proof"
    assert len(backend.calls_to("create_booking")) == 1


def test_gateway_failure_after_booking_is_compensated():
    backend = FakeBackend(payment=BackendError("Paystack down", 502))
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        workflow.reserve(GUEST)
        with pytest.raises(PaymentInitializationError):
            await workflow.choose_payment(PaymentMethod.ONLINE_GATEWAY)

    _run(scenario())

    assert workflow.state is ReservationState.IDLE
    assert len(backend.calls_to("cancel_booking")) == 1
    assert workflow.booking_error.endswith("Your unpaid booking has been cancelled.")


def test_choosing_payment_before_reserve_is_rejected():
    workflow = _workflow(FakeBackend())

    with pytest.raises(PaymentSelectionError):
        _run(workflow.choose_payment(PaymentMethod.PAY_ONSITE))


def test_price_follows_selected_dates():
    workflow = _workflow(FakeBackend())

    _run(workflow.select_dates(CHECK_IN, CHECK_OUT))

    assert workflow.price.total == 264.0


def test_changing_both_dates_checks_availability_once():
    backend = FakeBackend()
    workflow = _workflow(backend)

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        await workflow.select_dates(date(2026, 3, 11), date(2026, 3, 14))

    _run(scenario())

    checks = [(call[2], call[3]) for call in backend.calls_to("check_availability")]
    assert checks == [
        (CHECK_IN, CHECK_OUT),
        (date(2026, 3, 11), date(2026, 3, 14)),
    ]


def test_superseded_availability_check_is_cancelled():
    backend = GatedBackend()
    workflow = _workflow(backend)

    async def scenario():
        workflow.selector.set_check_in(CHECK_IN)
        workflow.selector.set_check_out(CHECK_OUT)
        first = workflow._availability_task
        await asyncio.sleep(0)

        workflow.selector.set_check_out(date(2026, 3, 14))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert first.cancelled()

        backend.release(1, True)
        return await workflow.settle()

    result = _run(scenario())

    assert backend.checked == [(CHECK_IN, CHECK_OUT), (CHECK_IN, date(2026, 3, 14))]
    assert result.check_out == date(2026, 3, 14)
    assert result.available is True


def test_unclamped_guest_count_fails_validation():
    workflow = _workflow(FakeBackend())

    async def scenario():
        await workflow.select_dates(CHECK_IN, CHECK_OUT)
        assert workflow.set_guests(10, clamp=False) == 10
        with pytest.raises(DateValidationError, match="between 1 and 4"):
            workflow.reserve(GUEST)

    _run(scenario())

    assert workflow.state is ReservationState.IDLE
