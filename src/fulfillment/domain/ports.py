"""Abstract collaborators outside persistence.

Like the repositories, these are defined here so the domain and
application layers only see the interface; concrete SNS, SMS and
gateway adapters live in the infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.events import DomainEvent
from fulfillment.domain.model.order import Order
from fulfillment.domain.model.payment import PaymentReference


class EventPublisher(ABC):

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Fire-and-forget publication.

        Implementations log delivery failures instead of raising; the
        channel is at-least-once and unordered.
        """


class Notifier(ABC):

    @abstractmethod
    def send(self, recipient: str, message: str) -> bool:
        """Send a message to a customer.  Returns False on failure."""


class PaymentGateway(ABC):

    @abstractmethod
    def create_payment_reference(self, order: Order) -> PaymentReference:
        """Register the order total with the gateway and return its reference."""


class CallbackVerifier(ABC):

    @abstractmethod
    def verify(self, body: bytes, signature: str | None) -> bool:
        """True only if ``signature`` authenticates ``body``."""
