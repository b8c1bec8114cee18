from __future__ import annotations

from shortlet.booking.errors import PaymentSelectionError
from shortlet.booking.models import BankTransferDetails, PaymentMethod

PAYMENT_METHOD_LABELS = {
    PaymentMethod.ONLINE_GATEWAY: "Pay Online",
    PaymentMethod.BANK_TRANSFER: "Bank Transfer",
    PaymentMethod.PAY_ONSITE: "Pay on Arrival",
}


class PaymentMethodSelector:
    """Three mutually exclusive payment choices with no default.

    Bank transfer is a two-step choice: the account details panel must be
    expanded before ``confirm_bank_transfer`` is accepted.
    """

    choices = tuple(PaymentMethod)

    def __init__(self, bank_details: BankTransferDetails):
        self.bank_details = bank_details
        self.is_open = False
        self.bank_details_visible = False
        self.selected: PaymentMethod | None = None

    def open(self) -> None:
        self.is_open = True
        self.bank_details_visible = False
        self.selected = None

    def toggle_bank_details(self) -> bool:
        self._require_open()
        self.bank_details_visible = not self.bank_details_visible
        return self.bank_details_visible

    def expand_bank_details(self) -> BankTransferDetails:
        self._require_open()
        self.bank_details_visible = True
        return self.bank_details

    def choose(self, method: PaymentMethod | str) -> PaymentMethod:
        self._require_open()
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise PaymentSelectionError(f"Unknown payment method: {method}")
        if self.selected is not None:
            raise PaymentSelectionError(
                "A payment method has already been chosen for this reservation."
            )
        if method is PaymentMethod.BANK_TRANSFER and not self.bank_details_visible:
            raise PaymentSelectionError(
                "Review the bank account details before proceeding with bank transfer."
            )
        self.selected = method
        return method

    def confirm_bank_transfer(self) -> PaymentMethod:
        return self.choose(PaymentMethod.BANK_TRANSFER)

    def dismiss(self) -> None:
        self.is_open = False
        self.bank_details_visible = False

    def cancel(self) -> None:
        self.dismiss()
        self.selected = None

    def _require_open(self) -> None:
        if not self.is_open:
            raise PaymentSelectionError("Payment method selection is not open.")
