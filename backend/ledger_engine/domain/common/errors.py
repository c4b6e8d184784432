"""Domain error types."""
from typing import Optional


class DomainError(Exception):
    """Base domain error."""
    error_code = "domain_error"


class NotFoundError(DomainError):
    """Resource not found."""
    error_code = "not_found"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id {identifier} not found")


class ValidationError(DomainError):
    """Validation error."""
    error_code = "validation_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthorizationError(DomainError):
    """Authorization error."""
    error_code = "not_authorized"

    def __init__(self, message: str = "Not authorized"):
        self.message = message
        super().__init__(message)


class ConflictError(DomainError):
    """Resource conflict error."""
    error_code = "conflict"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Validation

class SelfTransactionNotAllowed(ValidationError):
    """Buyer and seller are the same user."""
    error_code = "self_transaction_not_allowed"

    def __init__(self, message: str = "You cannot make an offer on your own product"):
        super().__init__(message)


class InvalidFormat(ValidationError):
    """Scanned delivery code could not be decoded."""
    error_code = "invalid_format"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid delivery code: {reason}")


class InsufficientCredits(ValidationError):
    """Sender does not hold enough time credits."""
    error_code = "insufficient_credits"

    def __init__(self, user_id: str, required: int, available: int):
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(f"Insufficient credits. Required: {required}, Available: {available}")


class InsufficientPoints(ValidationError):
    """User does not hold enough points."""
    error_code = "insufficient_points"

    def __init__(self, user_id: str, required: int, available: int):
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(f"Insufficient points. Required: {required}, Available: {available}")


# Authorization

class NotAuthorized(AuthorizationError):
    """Actor is not a party allowed to perform the operation."""


# Conflicts

class InvalidTransition(ConflictError):
    """Status change not permitted by the lifecycle."""
    error_code = "invalid_transition"

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from {current} to {target}")


class ConcurrencyConflict(ConflictError):
    """A concurrent writer changed the record first."""
    error_code = "concurrency_conflict"


class AlreadyReserved(ConflictError):
    """Product reservation flag already taken."""
    error_code = "already_reserved"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is already reserved")


class AlreadySold(ConflictError):
    """Product already finalized as sold."""
    error_code = "already_sold"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is already sold")


class ReservationConflict(ConflictError):
    """Accepting an offer could not lock its product(s)."""
    error_code = "reservation_conflict"

    def __init__(self, transaction_id: str, product_id: Optional[str] = None):
        self.transaction_id = transaction_id
        self.product_id = product_id
        super().__init__(f"Could not reserve product {product_id} for transaction {transaction_id}")


class AlreadyUsed(ConflictError):
    """Delivery token already redeemed."""
    error_code = "already_used"

    def __init__(self, token_id: str):
        self.token_id = token_id
        super().__init__(f"Delivery code {token_id} has already been used")


class Expired(ConflictError):
    """Delivery token validity window has passed."""
    error_code = "expired"

    def __init__(self, token_id: str):
        self.token_id = token_id
        super().__init__(f"Delivery code {token_id} has expired")


class TokenRevoked(ConflictError):
    """Delivery token cancelled together with its transaction."""
    error_code = "token_revoked"

    def __init__(self, token_id: str):
        self.token_id = token_id
        super().__init__(f"Delivery code {token_id} was cancelled")


class HandoffStarted(ConflictError):
    """Transaction already has a product handed over and can no longer be cancelled."""
    error_code = "handoff_started"

    def __init__(self, transaction_id: str, product_id: str):
        self.transaction_id = transaction_id
        self.product_id = product_id
        super().__init__(f"Product {product_id} of transaction {transaction_id} has already been handed over")


class NotAcceptedYet(ConflictError):
    """Service request has not been accepted by the provider."""
    error_code = "not_accepted_yet"

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(f"Service request {request_id} is {status}, not ACCEPTED")


class NoItemsAvailable(ConflictError):
    """No donated item is eligible for a surprise box."""
    error_code = "no_items_available"

    def __init__(self, message: str = "No surprise box items are available right now"):
        super().__init__(message)
