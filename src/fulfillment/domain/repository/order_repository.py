"""Abstract repository for the Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def next_id(self) -> str:
        """Generate a new globally unique order ID."""

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def list_by_store(self, store_id: str) -> list[Order]:
        """Return every order of a store (secondary index query)."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order.

        New orders (``version == 0``) are written only if the ID is unused;
        updates only if the stored version still matches.  Raises
        ConcurrencyConflictError otherwise.  Bumps ``order.version``.
        """
