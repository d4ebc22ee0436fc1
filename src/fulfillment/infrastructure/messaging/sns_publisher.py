"""SNS implementation of EventPublisher.

Publication is fire-and-forget: failures are logged and dropped, and
with no topic configured events are not sent at all.
"""

from __future__ import annotations

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from fulfillment.domain.events import DomainEvent, encode
from fulfillment.domain.ports import EventPublisher

logger = structlog.get_logger(__name__)


class SnsEventPublisher(EventPublisher):

    def __init__(self, client, topic_arn: str | None) -> None:
        self._client = client
        self._topic_arn = topic_arn

    def publish(self, event: DomainEvent) -> None:
        if not self._topic_arn:
            logger.warning("event_topic_not_configured", event_type=event.event_type)
            return
        try:
            response = self._client.publish(
                TopicArn=self._topic_arn,
                Message=encode(event),
                MessageAttributes={
                    "eventType": {"DataType": "String", "StringValue": event.event_type},
                },
            )
        except (BotoCoreError, ClientError):
            logger.exception("event_publish_failed", event_type=event.event_type)
            return
        logger.info(
            "event_published",
            event_type=event.event_type,
            message_id=response.get("MessageId"),
        )
