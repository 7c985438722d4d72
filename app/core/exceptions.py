"""Exceptions raised by the payment file encoder."""


class PaymentFileError(Exception):
    """Base exception for payment file generation."""

    def __init__(self, message: str = "Payment file error"):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(PaymentFileError, ValueError):
    """Raised when the debtor configuration cannot produce a valid file."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)
