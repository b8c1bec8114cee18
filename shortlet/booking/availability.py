from __future__ import annotations

import logging
from datetime import date
from typing import Protocol

from shortlet.booking.models import AvailabilityResult
from shortlet.services.backend import BackendError

logger = logging.getLogger(__name__)

NOT_AVAILABLE_MESSAGE = "Property not available for selected dates"
CHECK_FAILED_MESSAGE = "Failed to check availability"


class AvailabilityBackend(Protocol):
    async def check_availability(
        self,
        property_id: str,
        check_in: date,
        check_out: date,
        *,
        token: str | None = None,
    ) -> bool: ...


class AvailabilityChecker:
    """Advisory availability check for one property view.

    Each call takes a new generation number; a response that arrives after a
    newer call was issued is dropped, so a slow stale answer can never
    overwrite a fresher one. The displayed ``error`` is only replaced once
    the new answer is known.
    """

    def __init__(
        self,
        backend: AvailabilityBackend,
        property_id: str,
        *,
        token: str | None = None,
    ):
        self._backend = backend
        self.property_id = property_id
        self.token = token
        self._generation = 0
        self.pending = False
        self.error: str | None = None
        self.last_result: AvailabilityResult | None = None

    @property
    def blocking(self) -> bool:
        return self.error is not None

    async def check(self, check_in: date, check_out: date) -> AvailabilityResult | None:
        """Return the result, or ``None`` when superseded by a newer check."""
        self._generation += 1
        generation = self._generation
        self.pending = True

        try:
            available = await self._backend.check_availability(
                self.property_id, check_in, check_out, token=self.token
            )
            error = None if available else NOT_AVAILABLE_MESSAGE
        except BackendError as e:
            logger.warning(
                "Availability check failed for %s (%s..%s): %s",
                self.property_id,
                check_in,
                check_out,
                e.message,
            )
            available, error = False, e.message or CHECK_FAILED_MESSAGE

        if generation != self._generation:
            logger.debug(
                "Discarding stale availability result for %s (%s..%s)",
                self.property_id,
                check_in,
                check_out,
            )
            return None

        self.pending = False
        result = AvailabilityResult(
            property_id=self.property_id,
            check_in=check_in,
            check_out=check_out,
            available=bool(available),
            error=error,
        )
        self.last_result = result
        self.error = error
        return result

    def invalidate(self) -> None:
        """Forget the current answer and fence off any in-flight check."""
        self._generation += 1
        self.pending = False
        self.error = None
        self.last_result = None
