from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from shortlet.booking.errors import BookingContractError, BookingCreationError
from shortlet.booking.models import BookingRequest
from shortlet.services.backend import BackendError

logger = logging.getLogger(__name__)

MISSING_BOOKING_ID_MESSAGE = "Booking created but no booking ID received"
CREATE_FAILED_MESSAGE = "Failed to process booking. Please try again."


class BookingBackend(Protocol):
    async def create_booking(self, payload: dict[str, Any], *, token: str | None = None) -> dict: ...


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _booking_id(response: dict) -> Any:
    return _as_dict(response.get("booking")).get("_id")


def _top_level_id(response: dict) -> Any:
    return response.get("_id")


def _data_booking_id(response: dict) -> Any:
    return _as_dict(_as_dict(response.get("data")).get("booking")).get("_id")


# Known response shapes, checked in order.
BOOKING_ID_STRATEGIES: tuple[tuple[str, Callable[[dict], Any]], ...] = (
    ("booking._id", _booking_id),
    ("_id", _top_level_id),
    ("data.booking._id", _data_booking_id),
)


def extract_booking_id(response: Any) -> str:
    """Pull the booking identifier out of a create-booking response.

    Raises ``BookingContractError`` when none of the known shapes match.
    """
    if isinstance(response, dict):
        for shape, strategy in BOOKING_ID_STRATEGIES:
            value = strategy(response)
            if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value).strip():
                logger.debug("Booking id found at %s", shape)
                return str(value).strip()
    logger.warning("Booking response matched no known id shape: %r", response)
    raise BookingContractError(MISSING_BOOKING_ID_MESSAGE, response)


def booking_record(response: dict) -> dict:
    """The booking object of a create-booking response, whichever shape it uses."""
    for candidate in (
        response.get("booking"),
        _as_dict(response.get("data")).get("booking"),
    ):
        if isinstance(candidate, dict):
            return candidate
    return response


@dataclass(frozen=True)
class CreatedBooking:
    booking_id: str
    response: dict

    @property
    def record(self) -> dict:
        return booking_record(self.response)


class BookingCreator:
    def __init__(self, backend: BookingBackend, *, token: str | None = None):
        self._backend = backend
        self.token = token

    async def create(self, request: BookingRequest) -> CreatedBooking:
        logger.info(
            "Creating booking for %s (%s..%s, %s guests, %s)",
            request.property_id,
            request.check_in,
            request.check_out,
            request.guests,
            request.payment_method.value,
        )
        try:
            response = await self._backend.create_booking(request.to_payload(), token=self.token)
        except BackendError as e:
            raise BookingCreationError(e.message or CREATE_FAILED_MESSAGE) from e

        booking_id = extract_booking_id(response)
        logger.info("Booking %s created for %s", booking_id, request.property_id)
        return CreatedBooking(booking_id=booking_id, response=response)
