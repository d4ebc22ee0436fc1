"""Customer notification adapters."""

from __future__ import annotations

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from fulfillment.domain.ports import Notifier

logger = structlog.get_logger(__name__)


class LoggingNotifier(Notifier):
    """Writes messages to the log instead of sending them.  Used when SMS is disabled."""

    def send(self, recipient: str, message: str) -> bool:
        logger.info("notification_logged", recipient=recipient, message=message)
        return True


class SnsSmsNotifier(Notifier):
    """Sends transactional SMS through SNS."""

    def __init__(self, client) -> None:
        self._client = client

    def send(self, recipient: str, message: str) -> bool:
        try:
            self._client.publish(
                PhoneNumber=recipient,
                Message=message,
                MessageAttributes={
                    "AWS.SNS.SMS.SMSType": {
                        "DataType": "String",
                        "StringValue": "Transactional",
                    }
                },
            )
        except (BotoCoreError, ClientError):
            logger.exception("sms_send_failed", recipient=recipient)
            return False
        return True
