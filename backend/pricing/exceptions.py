"""
Custom exceptions for display-side pricing.
"""


class PricingError(Exception):
    """Base exception for pricing errors."""
    pass


class ReconciliationError(PricingError):
    """Raised when a derived breakdown does not sum back to the authoritative total."""

    def __init__(self, total, subtotal, tax_amounts, message=None):
        self.total = total
        self.subtotal = subtotal
        self.tax_amounts = list(tax_amounts)
        if message is None:
            reconstructed = subtotal + sum(self.tax_amounts)
            message = (
                f"Breakdown does not reconcile: subtotal {subtotal} + taxes "
                f"{sum(self.tax_amounts)} = {reconstructed}, expected {total}"
            )
        super().__init__(message)


class InvalidAmountError(PricingError):
    """Raised when an input amount or percentage is not a usable number."""

    def __init__(self, field, value, message=None):
        self.field = field
        self.value = value
        if message is None:
            message = f"Invalid value for {field}: {value!r}"
        super().__init__(message)
