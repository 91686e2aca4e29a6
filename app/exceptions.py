"""Domain exceptions raised by the accrual engine and the ledger."""


class FinanceError(Exception):
    """Base exception for all finance business-rule errors."""

    code = "finance_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FinanceError):
    """Malformed or out-of-range input on a named field."""

    code = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(FinanceError):
    """Referenced finance or payment does not exist."""

    code = "not_found"
    status_code = 404


class InvalidAmountError(FinanceError):
    code = "invalid_amount"


class ExceedsOutstandingError(FinanceError):
    code = "exceeds_outstanding"


class BelowMinimumError(FinanceError):
    code = "below_minimum"


class NotClearedError(FinanceError):
    """Raised when deleting a finance that still has principal outstanding."""

    code = "not_cleared"
