"""Error types raised by the loan service.

Request errors derive from ``LoanServiceError`` and are rendered to the
client with their ``code`` and ``reason``. ``ConfigurationError`` marks a
programming mistake and is never reported as a client failure.
"""


class LoanServiceError(Exception):
    status_code = 400
    default_code = "bad_request"

    def __init__(self, code: str | None = None, reason: str | None = None):
        self.code = code or self.default_code
        self.reason = reason or self.code.replace("_", " ")
        super().__init__(self.reason)

    def to_dict(self) -> dict:
        return {"detail": self.code, "reason": self.reason}


class Unauthorized(LoanServiceError):
    status_code = 401
    default_code = "unauthorized"


class Forbidden(LoanServiceError):
    status_code = 403
    default_code = "forbidden"


class Conflict(LoanServiceError):
    status_code = 409
    default_code = "conflict"


class InvalidState(LoanServiceError):
    default_code = "invalid_state"


class InvalidAmount(LoanServiceError):
    default_code = "invalid_amount"


class NotFound(LoanServiceError):
    status_code = 404
    default_code = "not_found"


class PartialNotFound(LoanServiceError):
    default_code = "invalid_loan_ids"

    def __init__(self, ids: list[int], reason: str | None = None):
        self.ids = list(ids)
        super().__init__(
            self.default_code,
            reason or f"Invalid loan IDs specified: {', '.join(str(i) for i in self.ids)}",
        )

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["ids"] = self.ids
        return out


class ConfigurationError(RuntimeError):
    """Raised for broken configuration or wiring; fatal, not a request error."""
