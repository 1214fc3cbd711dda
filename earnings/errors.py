class EarningsError(Exception):
    code = "EARNINGS_ERROR"
    retryable = False


class ValidationError(EarningsError):
    code = "VALIDATION_ERROR"


class ConflictError(EarningsError):
    code = "CONFLICT"


class NotFoundError(EarningsError):
    code = "NOT_FOUND"


class InfrastructureError(EarningsError):
    """Transient storage or locking failure; safe for the caller to retry."""

    code = "INFRASTRUCTURE_ERROR"
    retryable = True


class InvalidAmountError(ValidationError):
    code = "INVALID_AMOUNT"


class InvalidBonusRateError(ValidationError):
    code = "INVALID_BONUS_RATE"


class InvalidDestinationDetailsError(ValidationError):
    code = "INVALID_DESTINATION_DETAILS"


class BelowMinimumPayoutError(ValidationError):
    code = "BELOW_MINIMUM_PAYOUT"


class MissingReasonError(ValidationError):
    code = "MISSING_REASON"


class MissingSettlementReferenceError(ValidationError):
    code = "MISSING_SETTLEMENT_REFERENCE"


class MissingOperatorError(ValidationError):
    code = "MISSING_OPERATOR"


class InsufficientAvailableBalanceError(ConflictError):
    code = "INSUFFICIENT_AVAILABLE_BALANCE"


class RequestAlreadyOpenError(ConflictError):
    code = "REQUEST_ALREADY_OPEN"


class InvalidStateTransitionError(ConflictError):
    code = "INVALID_STATE_TRANSITION"


class EventCreatorMismatchError(ConflictError):
    """The event id is already bound to a different creator."""

    code = "EVENT_CREATOR_MISMATCH"


class RequestNotFoundError(NotFoundError):
    code = "REQUEST_NOT_FOUND"


class ContendedError(InfrastructureError):
    code = "CONTENDED"


class StorageUnavailableError(InfrastructureError):
    code = "STORAGE_UNAVAILABLE"
