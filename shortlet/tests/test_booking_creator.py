from __future__ import annotations

import asyncio
from datetime import date

import pytest

from shortlet.booking.creator import (
    MISSING_BOOKING_ID_MESSAGE,
    BookingCreator,
    booking_record,
    extract_booking_id,
)
from shortlet.booking.errors import BookingContractError, BookingCreationError
from shortlet.booking.models import BookingRequest, PaymentMethod
from shortlet.services.backend import BackendError
from shortlet.tests.fakes import BOOKING_ID, PROPERTY_ID, FakeBackend


def _run(coro):
    return asyncio.run(coro)


def _request() -> BookingRequest:
    return BookingRequest(
        property_id=PROPERTY_ID,
        check_in=date(2026, 3, 10),
        check_out=date(2026, 3, 12),
        guests=2,
        payment_method=PaymentMethod.BANK_TRANSFER,
    )


@pytest.mark.parametrize(
    "response",
    [
        {"booking": {"_id": "b-1"}},
        {"_id": "b-1", "status": "pending"},
        {"data": {"booking": {"_id": "b-1"}}},
    ],
)
def test_extract_booking_id_known_shapes(response):
    assert extract_booking_id(response) == "b-1"


def test_extract_booking_id_prefers_nested_booking():
    assert extract_booking_id({"booking": {"_id": "inner"}, "_id": "outer"}) == "inner"


@pytest.mark.parametrize(
    "response",
    [
        {"success": True},
        {"booking": {"id": "b-1"}},
        {"_id": ""},
        {"data": {"booking": None}},
        None,
    ],
)
def test_extract_booking_id_rejects_unknown_shapes(response):
    with pytest.raises(BookingContractError) as exc:
        extract_booking_id(response)
    assert exc.value.message == MISSING_BOOKING_ID_MESSAGE
    assert exc.value.response == response


def test_booking_record_finds_nested_booking():
    assert booking_record({"data": {"booking": {"_id": "b-1", "totalAmount": 10}}}) == {
        "_id": "b-1",
        "totalAmount": 10,
    }
    assert booking_record({"_id": "b-1"}) == {"_id": "b-1"}


def test_create_posts_payload_with_token():
    backend = FakeBackend()
    creator = BookingCreator(backend, token="tok")

    created = _run(creator.create(_request()))

    assert created.booking_id == BOOKING_ID
    assert created.record["totalAmount"] == 264
    [(_, payload, token)] = backend.calls_to("create_booking")
    assert payload["paymentMethod"] == "bank_transfer"
    assert token == "tok"


def test_create_wraps_backend_failure():
    backend = FakeBackend(booking=BackendError("Property already booked", 409))
    creator = BookingCreator(backend)

    with pytest.raises(BookingCreationError, match="Property already booked"):
        _run(creator.create(_request()))


def test_create_without_id_is_a_contract_error():
    creator = BookingCreator(FakeBackend(booking={"success": True}))

    with pytest.raises(BookingContractError):
        _run(creator.create(_request()))
