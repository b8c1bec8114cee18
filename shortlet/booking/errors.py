"""Failures a reservation attempt can surface to the guest.

Each error carries the exact user-facing ``message``. Routes translate these
into HTTP responses; the workflow stores the message as its booking or
availability error.
"""

from __future__ import annotations


class BookingWorkflowError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DateValidationError(BookingWorkflowError):
    """Missing or inconsistent dates/guest count, caught before any network call."""


class AvailabilityConflictError(BookingWorkflowError):
    """The latest availability result blocks the reservation."""


class PaymentSelectionError(BookingWorkflowError):
    """Payment method chosen out of order (e.g. bank transfer not reviewed)."""


class BookingCreationError(BookingWorkflowError):
    """The backend refused or failed to create the booking."""


class BookingContractError(BookingCreationError):
    """The booking response matched none of the known identifier shapes."""

    def __init__(self, message: str, response: object = None):
        super().__init__(message)
        self.response = response


class PaymentInitializationError(BookingWorkflowError):
    """Payment could not be started after the booking already exists."""

    def __init__(
        self,
        message: str,
        *,
        booking_id: str | None = None,
        booking_cancelled: bool = False,
    ):
        super().__init__(message)
        self.booking_id = booking_id
        self.booking_cancelled = booking_cancelled
