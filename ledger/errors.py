from typing import Optional

__all__ = [
    'LedgerError', 'NetworkFailure', 'RequestFailed',
    'ValidationFailure', 'DeserializationFailure',
]


class LedgerError(Exception):
    """Base class for every failure the dashboard knows how to report."""

    @property
    def message(self) -> str:
        return str(self)


class NetworkFailure(LedgerError):
    """The request could not be sent or the response never arrived."""


class RequestFailed(LedgerError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"Error {status}: {message}")
        self.status = status
        self.body = message


class ValidationFailure(LedgerError):
    """Form input rejected before any network call.

    field: name of the offending form field (e.g. "amount")
    rule: short rule id: "required", "max_length", "positive", "invalid_date"...
    """

    def __init__(self, field: str, rule: str, detail: Optional[str] = None):
        super().__init__(detail or f"{field}: {rule}")
        self.field = field
        self.rule = rule


class DeserializationFailure(LedgerError, ValueError):
    """A 2xx response whose body is not the JSON we expected."""
