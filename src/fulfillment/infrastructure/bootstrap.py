"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

import boto3

from fulfillment.application.event_router import EventRouter
from fulfillment.application.inventory_events import InventoryEventHandler
from fulfillment.domain.ports import Notifier
from fulfillment.domain.service.stock_reducer import StockReducer
from fulfillment.infrastructure import payments
from fulfillment.infrastructure.config import Settings, get_settings
from fulfillment.infrastructure.logging import configure_logging
from fulfillment.infrastructure.messaging.sns_publisher import SnsEventPublisher
from fulfillment.infrastructure.notifications import LoggingNotifier, SnsSmsNotifier
from fulfillment.infrastructure.persistence.dynamodb import create_client
from fulfillment.infrastructure.persistence.dynamodb_delivery_repository import (
    DynamoDBDeliveryRepository,
    DynamoDBPaymentRepository,
)
from fulfillment.infrastructure.persistence.dynamodb_order_repository import (
    DynamoDBOrderRepository,
)
from fulfillment.infrastructure.persistence.dynamodb_product_repository import (
    DynamoDBProductRepository,
)
from fulfillment.infrastructure.persistence.dynamodb_stock_deduction_repository import (
    DynamoDBStockDeductionRepository,
)


def settings() -> Settings:
    return get_settings()


def init_logging() -> None:
    configure_logging(settings().log_level, settings().json_logs)


# --- Clients ------------------------------------------------------------------

@lru_cache
def dynamodb_client():
    return create_client(settings().aws_region, settings().aws_endpoint_url)


@lru_cache
def sns_client():
    kwargs = {"region_name": settings().aws_region}
    if settings().aws_endpoint_url:
        kwargs["endpoint_url"] = settings().aws_endpoint_url
    return boto3.client("sns", **kwargs)


@lru_cache
def razorpay_client():
    return payments.create_client(settings().razorpay_key_id, settings().razorpay_key_secret)


# --- Repositories -------------------------------------------------------------

def product_repository() -> DynamoDBProductRepository:
    return DynamoDBProductRepository(dynamodb_client(), settings().table_name("products"))


def order_repository() -> DynamoDBOrderRepository:
    return DynamoDBOrderRepository(dynamodb_client(), settings().table_name("orders"))


def delivery_repository() -> DynamoDBDeliveryRepository:
    return DynamoDBDeliveryRepository(
        dynamodb_client(),
        settings().table_name("deliveries"),
        payments_table=settings().table_name("payments"),
        orders_table=settings().table_name("orders"),
    )


def payment_repository() -> DynamoDBPaymentRepository:
    return DynamoDBPaymentRepository(dynamodb_client(), settings().table_name("payments"))


def stock_deduction_repository() -> DynamoDBStockDeductionRepository:
    return DynamoDBStockDeductionRepository(
        dynamodb_client(),
        settings().table_name("stock-deductions"),
        products_table=settings().table_name("products"),
        product_repo=product_repository(),
    )


# --- Collaborators ------------------------------------------------------------

def event_publisher() -> SnsEventPublisher:
    return SnsEventPublisher(sns_client(), settings().events_topic_arn)


def notifier() -> Notifier:
    if settings().sms_enabled:
        return SnsSmsNotifier(sns_client())
    return LoggingNotifier()


def payment_gateway() -> payments.RazorpayGateway:
    return payments.RazorpayGateway(razorpay_client())


def callback_verifier() -> payments.RazorpayCallbackVerifier:
    return payments.RazorpayCallbackVerifier(razorpay_client(), settings().webhook_secret)


# --- Services -----------------------------------------------------------------

def stock_reducer() -> StockReducer:
    return StockReducer(product_repository(), stock_deduction_repository())


def inventory_router() -> EventRouter:
    publisher = event_publisher()
    handler = InventoryEventHandler(stock_reducer(), publisher)
    return EventRouter(publisher, handler.handlers())
