"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidSelectionError(DomainException):
    """Installment selection or custom amount does not fit the transaction"""

    pass


class NoScheduledInstallmentsError(DomainException):
    """Transaction has no scheduled installments left to pay off"""

    pass


class InvalidStatusTransitionError(DomainException):
    """Requested status change is not allowed by the state machine"""

    pass


class ProcessorAPIError(DomainException):
    """Payment processor returned an error or is unavailable"""

    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail or message
