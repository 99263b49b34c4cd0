"""Error taxonomy for the Logistics domain.

Malformed input is reported with Protean's ``ValidationError``; the errors
below cover business-rule failures. Each carries a machine-readable ``kind``
that the API layer returns to callers, plus structured ``details``.
"""


class LogisticsError(Exception):
    kind = "logistics_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, **self.details}


class InvalidInputError(LogisticsError):
    kind = "validation_error"


class InvalidTransitionError(LogisticsError):
    """A shipment or pickup request was asked to move along an edge it does not have."""

    kind = "invalid_transition"

    def __init__(self, current: str, requested: str, message: str | None = None):
        super().__init__(
            message or f"Cannot transition from {current} to {requested}",
            current=current,
            requested=requested,
        )
        self.current = current
        self.requested = requested


class InsufficientFundsError(LogisticsError):
    kind = "insufficient_funds"

    def __init__(self, account_id: str, required: float, available: float, shortfall: float):
        super().__init__(
            f"Insufficient funds: {shortfall:.3f} short of {required:.3f}",
            account_id=account_id,
            required=required,
            available=available,
            shortfall=shortfall,
        )
        self.account_id = account_id
        self.required = required
        self.available = available
        self.shortfall = shortfall


class AlreadyMemberError(LogisticsError):
    kind = "already_member"

    def __init__(self, user_id: str, organization_id: str):
        super().__init__(
            "User already belongs to another organization",
            user_id=user_id,
            organization_id=organization_id,
        )
        self.user_id = user_id
        self.organization_id = organization_id


class NotFoundError(LogisticsError):
    kind = "not_found"


class ConcurrencyConflictError(LogisticsError):
    kind = "concurrency_conflict"


class PermissionDeniedError(LogisticsError):
    kind = "permission_denied"


class AuthenticationRequiredError(LogisticsError):
    kind = "authentication_required"


class CarrierBookingError(LogisticsError):
    kind = "carrier_error"


class LedgerIntegrityError(LogisticsError):
    """The stored balance no longer matches the entry chain. Never retried."""

    kind = "ledger_integrity"
