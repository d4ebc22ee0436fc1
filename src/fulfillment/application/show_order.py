"""Application service: Show Order and List Store Orders use cases (queries)."""

from __future__ import annotations

from fulfillment.application.dto import OrderDTO
from fulfillment.domain.exceptions import OrderNotFoundError, ValidationError
from fulfillment.domain.repository.order_repository import OrderRepository


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: str) -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return OrderDTO.from_order(order)


class ListStoreOrdersHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, store_id: str) -> list[OrderDTO]:
        if not store_id:
            raise ValidationError("Store ID required")
        orders = sorted(
            self._order_repo.list_by_store(store_id),
            key=lambda o: o.created_at,
            reverse=True,
        )
        return [OrderDTO.from_order(order) for order in orders]
