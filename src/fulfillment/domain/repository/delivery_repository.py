"""Abstract repository for the Delivery aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.delivery import Delivery
from fulfillment.domain.model.order import Order
from fulfillment.domain.model.payment import PaymentRecord


class DeliveryRepository(ABC):

    @abstractmethod
    def next_id(self) -> str:
        """Generate a new globally unique delivery ID."""

    @abstractmethod
    def get_by_id(self, delivery_id: str) -> Delivery | None:
        """Return a delivery by its ID, or None if not found."""

    @abstractmethod
    def list_by_agent(self, agent_id: str) -> list[Delivery]:
        """Return every delivery assigned to an agent."""

    @abstractmethod
    def save(self, delivery: Delivery) -> None:
        """Persist with the same version rules as OrderRepository.save."""

    @abstractmethod
    def save_with_order(self, delivery: Delivery, order: Order) -> None:
        """Persist a delivery and its order in one atomic write.

        Both writes are version-checked; on ConcurrencyConflictError
        neither record is written.
        """

    @abstractmethod
    def record_cash_collection(self, delivery: Delivery, payment: PaymentRecord) -> None:
        """Write the collected delivery and its payment record atomically.

        The delivery write is conditional on cash not having been collected
        yet; raises AlreadyCollectedError if another writer got there first,
        in which case neither record is written.
        """


class PaymentRepository(ABC):

    @abstractmethod
    def get(self, tenant_id: str, payment_id: str) -> PaymentRecord | None:
        """Return a payment record by its key, or None."""
