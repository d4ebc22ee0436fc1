"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI and event consumers can catch them uniformly and report
user-friendly messages.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """Input is missing or malformed, or a business rule was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class ProductNotFoundError(EntityNotFoundError):

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class OrderNotFoundError(EntityNotFoundError):

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class DeliveryNotFoundError(EntityNotFoundError):

    def __init__(self, delivery_id: str) -> None:
        super().__init__(f"Delivery {delivery_id} not found")
        self.delivery_id = delivery_id


class InsufficientStockError(DomainException):
    """Stock cannot cover the requested quantity.

    ``product_ids`` lists every product that failed its stock check so the
    caller can tell exactly which lines to correct.
    """

    def __init__(self, product_ids: list[str], detail: str | None = None) -> None:
        self.product_ids = list(product_ids)
        message = f"Insufficient stock for {', '.join(self.product_ids)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class TransactionCapacityError(DomainException):
    """More distinct items than a single atomic transaction can hold."""

    def __init__(self, item_count: int, limit: int) -> None:
        super().__init__(
            f"{item_count} distinct items exceed the atomic transaction "
            f"limit of {limit}"
        )
        self.item_count = item_count
        self.limit = limit


class InvalidTransitionError(DomainException):
    """A status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid status transition from {current} to {requested}"
        )
        self.current = current
        self.requested = requested
        self.allowed = list(allowed)


class NotCODError(DomainException):
    """Cash was recorded against a delivery that is not cash on delivery."""


class AlreadyCollectedError(DomainException):
    """Cash for this delivery has already been recorded."""


class ConcurrencyConflictError(DomainException):
    """The record changed after it was read; reload and retry."""


class ExternalCollaboratorError(DomainException):
    """A call to an external service (gateway, notifier, channel) failed."""


class SignatureVerificationError(ExternalCollaboratorError):
    """A payment callback carried a missing or invalid signature."""
