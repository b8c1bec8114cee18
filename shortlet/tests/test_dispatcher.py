from __future__ import annotations

import asyncio

import pytest

from shortlet.booking.creator import CreatedBooking
from shortlet.booking.dispatcher import (
    GATEWAY_UNAVAILABLE_MESSAGE,
    ONSITE_CONFIRMATION_MESSAGE,
    UNPAID_CANCELLATION_REASON,
    PaymentDispatcher,
    bank_transfer_details,
)
from shortlet.booking.errors import PaymentInitializationError
from shortlet.booking.models import BankTransferDetails, NavigationKind, PaymentMethod
from shortlet.services.backend import BackendError
from shortlet.tests.fakes import BOOKING_ID, FakeBackend

BANK = BankTransferDetails(
    account_name="Hols Apartments Ltd", account_number="0900408855", bank_name="GT Bank"
)


def _run(coro):
    return asyncio.run(coro)


def _created(response: dict | None = None) -> CreatedBooking:
    return CreatedBooking(
        booking_id=BOOKING_ID,
        response=response or {"booking": {"_id": BOOKING_ID, "totalAmount": 264}},
    )


def _dispatcher(backend: FakeBackend, sleeps: list | None = None, **kwargs) -> PaymentDispatcher:
    async def fake_sleep(delay):
        if sleeps is not None:
            sleeps.append(delay)

    return PaymentDispatcher(
        backend,
        fallback_bank_details=BANK,
        token="tok",
        sleep=fake_sleep,
        **kwargs,
    )


def test_online_payment_redirects_to_gateway_after_delay():
    backend = FakeBackend()
    sleeps: list = []

    result = _run(
        _dispatcher(backend, sleeps).dispatch(
            PaymentMethod.ONLINE_GATEWAY, _created(), "guest@example.com"
        )
    )

    assert result.navigation.kind is NavigationKind.EXTERNAL
    assert result.navigation.url == "https://checkout.example.com/pay/abc"
    assert result.payment.reference == "ref-123"
    assert sleeps == [0.1]
    assert backend.calls_to("initialize_payment") == [
        ("initialize_payment", BOOKING_ID, "guest@example.com", "tok")
    ]


def test_online_payment_failure_cancels_unpaid_booking():
    backend = FakeBackend(payment=BackendError("Paystack down", 502))

    with pytest.raises(PaymentInitializationError) as exc:
        _run(
            _dispatcher(backend).dispatch(
                PaymentMethod.ONLINE_GATEWAY, _created(), "guest@example.com"
            )
        )

    assert exc.value.message.startswith(GATEWAY_UNAVAILABLE_MESSAGE)
    assert exc.value.booking_cancelled is True
    assert exc.value.booking_id == BOOKING_ID
    assert backend.calls_to("cancel_booking") == [
        ("cancel_booking", BOOKING_ID, UNPAID_CANCELLATION_REASON, "tok")
    ]


def test_missing_authorization_url_is_a_payment_failure():
    backend = FakeBackend(payment={"authorization_url": None, "reference": "r"})

    with pytest.raises(PaymentInitializationError):
        _run(
            _dispatcher(backend).dispatch(
                PaymentMethod.ONLINE_GATEWAY, _created(), "guest@example.com"
            )
        )

    assert len(backend.calls_to("cancel_booking")) == 1


def test_payment_failure_without_cancellation_names_the_booking():
    backend = FakeBackend(payment=BackendError("Paystack down", 502))

    with pytest.raises(PaymentInitializationError) as exc:
        _run(
            _dispatcher(backend, cancel_unpaid_bookings=False).dispatch(
                PaymentMethod.ONLINE_GATEWAY, _created(), "guest@example.com"
            )
        )

    assert exc.value.booking_cancelled is False
    assert BOOKING_ID in exc.value.message
    assert backend.calls_to("cancel_booking") == []


def test_failed_cancellation_still_reports_payment_failure():
    backend = FakeBackend(
        payment=BackendError("Paystack down", 502),
        cancel=BackendError("Failed to cancel booking", 500),
    )

    with pytest.raises(PaymentInitializationError) as exc:
        _run(
            _dispatcher(backend).dispatch(
                PaymentMethod.ONLINE_GATEWAY, _created(), "guest@example.com"
            )
        )

    assert exc.value.booking_cancelled is False


def test_bank_transfer_goes_to_proof_upload_with_instructions():
    backend = FakeBackend()
    created = _created(
        {
            "booking": {
                "_id": BOOKING_ID,
                "totalAmount": 264000,
                "bankTransferDetails": {"transferReference": "HOLS-123"},
            }
        }
    )

    result = _run(_dispatcher(backend).dispatch(PaymentMethod.BANK_TRANSFER, created, "g@x.com"))

    assert result.navigation.kind is NavigationKind.IN_APP
    assert result.navigation.url == f"/dashboard/bookings/{BOOKING_ID}/upload-proof"
    assert result.bank_transfer.amount == 264000
    assert result.bank_transfer.details.transfer_reference == "HOLS-123"
    assert "₦264,000" in result.navigation.message
    assert "GT Bank" in result.navigation.message
    assert backend.calls == []


def test_bank_details_from_response_take_precedence():
    details = bank_transfer_details(
        {"bankDetails": {"accountName": "Escrow", "accountNumber": "123", "bankName": "Zenith"}},
        {},
        BANK,
    )

    assert details.account_name == "Escrow"
    assert details.account_number == "123"
    assert details.bank_name == "Zenith"


def test_pay_onsite_goes_to_bookings():
    backend = FakeBackend()

    result = _run(_dispatcher(backend).dispatch(PaymentMethod.PAY_ONSITE, _created(), "g@x.com"))

    assert result.navigation.url == "/dashboard/bookings"
    assert result.navigation.message == ONSITE_CONFIRMATION_MESSAGE
    assert backend.calls == []


def test_dispatch_rejects_unknown_method():
    backend = FakeBackend()

    with pytest.raises(ValueError, match="Unsupported payment method"):
        _run(_dispatcher(backend).dispatch("crypto", _created(), "guest@example.com"))

    assert backend.calls == []
