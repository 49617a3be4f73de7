"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ServiceAPIError(DomainException):
    """Remote service returned an error, timed out, or sent an unreadable body"""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is not None:
            message = f"{message} (status {self.status_code})"
        if self.body:
            snippet = self.body if len(self.body) <= 500 else self.body[:500] + "..."
            message = f"{message}: {snippet}"
        return message


class FintocAPIError(ServiceAPIError):
    """Fintoc API returned an error or is unavailable"""

    pass


class LunchMoneyAPIError(ServiceAPIError):
    """Lunch Money API returned an error or is unavailable"""

    pass


class UnsupportedCurrencyError(DomainException):
    """Currency code has no known minor-unit scale"""

    def __init__(self, currency_code: str):
        super().__init__(f"Currency {currency_code.upper()} is not supported.")
        self.currency_code = currency_code


class BalanceVerificationError(DomainException):
    """Ledger echoed back a different balance or currency than requested"""

    pass


class InvalidSyncWindowError(DomainException):
    """Lookback duration or end offset cannot form a valid time window"""

    pass
