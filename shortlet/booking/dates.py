from __future__ import annotations

from collections.abc import Callable
from datetime import date, timedelta

from shortlet.booking.errors import DateValidationError
from shortlet.booking.models import BookingRequest, PaymentMethod, PriceBreakdown

MISSING_DATES_MESSAGE = "Please select check-in and check-out dates"


def tomorrow(today: date | None = None) -> date:
    """Earliest selectable check-in."""
    return (today or date.today()) + timedelta(days=1)


def min_check_out_date(check_in: date | None, today: date | None = None) -> date:
    """Earliest selectable check-out: one night after check-in."""
    if check_in is None:
        return tomorrow(today)
    return check_in + timedelta(days=1)


def parse_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    value = value.strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise DateValidationError("Invalid date format. Use YYYY-MM-DD.")


def count_nights(check_in: date | None, check_out: date | None) -> int:
    if check_in is None or check_out is None:
        return 0
    return max((check_out - check_in).days, 0)


def price_breakdown(
    nightly_rate: float,
    check_in: date | None,
    check_out: date | None,
    service_fee_rate: float = 0.1,
) -> PriceBreakdown | None:
    nights = count_nights(check_in, check_out)
    if nights <= 0:
        return None
    subtotal = round(nightly_rate * nights, 2)
    service_fee = round(subtotal * service_fee_rate, 2)
    return PriceBreakdown(
        nightly_rate=nightly_rate,
        nights=nights,
        subtotal=subtotal,
        service_fee=service_fee,
        total=round(subtotal + service_fee, 2),
    )


class DateGuestSelector:
    """Holds the check-in/check-out/guest selection of one property view.

    Setting a well-formed date never raises; the selectable range is exposed through
    ``min_check_in``/``min_check_out`` and checked by ``validate``. Every date
    change is reported to ``on_dates_changed``.
    """

    def __init__(
        self,
        max_guests: int,
        *,
        today: Callable[[], date] = date.today,
        on_dates_changed: Callable[[date | None, date | None], None] | None = None,
    ):
        self.max_guests = max(int(max_guests or 1), 1)
        self._today = today
        self._on_dates_changed = on_dates_changed
        self.check_in: date | None = None
        self.check_out: date | None = None
        self.guests = 1

    @property
    def min_check_in(self) -> date:
        return tomorrow(self._today())

    @property
    def min_check_out(self) -> date:
        return min_check_out_date(self.check_in, self._today())

    @property
    def has_dates(self) -> bool:
        return self.check_in is not None and self.check_out is not None

    @property
    def dates_ordered(self) -> bool:
        return self.has_dates and self.check_out > self.check_in

    @property
    def nights(self) -> int:
        return count_nights(self.check_in, self.check_out)

    def set_check_in(self, value: date | str | None) -> None:
        new_value = parse_date(value)
        if new_value == self.check_in:
            return
        self.check_in = new_value
        self._notify()

    def set_check_out(self, value: date | str | None) -> None:
        new_value = parse_date(value)
        if new_value == self.check_out:
            return
        self.check_out = new_value
        self._notify()

    def set_guests(self, count: int, *, clamp: bool = True) -> int:
        """Set the party size; without ``clamp`` an out-of-range count is kept for ``validate``."""
        count = int(count)
        self.guests = min(max(count, 1), self.max_guests) if clamp else count
        return self.guests

    def validate(self) -> None:
        if not self.has_dates:
            raise DateValidationError(MISSING_DATES_MESSAGE)
        if self.check_out <= self.check_in:
            raise DateValidationError("Check-out must be after check-in.")
        if self.check_in < self.min_check_in:
            raise DateValidationError(
                f"Check-in must be on or after {self.min_check_in.isoformat()}."
            )
        if not 1 <= self.guests <= self.max_guests:
            raise DateValidationError(
                f"Guest count must be between 1 and {self.max_guests}."
            )

    def build_request(
        self,
        property_id: str,
        payment_method: PaymentMethod,
        special_requests: str = "",
    ) -> BookingRequest:
        self.validate()
        return BookingRequest(
            property_id=property_id,
            check_in=self.check_in,
            check_out=self.check_out,
            guests=self.guests,
            payment_method=payment_method,
            special_requests=special_requests,
        )

    def _notify(self) -> None:
        if self._on_dates_changed is not None:
            self._on_dates_changed(self.check_in, self.check_out)
