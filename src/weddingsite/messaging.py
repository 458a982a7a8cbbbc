"""SNS publishing.

publish() raises on failure and is used where the publish is the point of
the request (contact form, notification fan-out). publish_best_effort() is
for follow-up notifications after a successful write: delivery is at most
once and a failure is logged and reported back, never raised.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from weddingsite.utils import json_default

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    published: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class SnsPublisher:
    def __init__(self, region: Optional[str] = None, client=None):
        self.client = client or boto3.client("sns", region_name=region)

    def publish(
        self,
        topic_arn: Optional[str],
        message: Dict[str, Any],
        attributes: Optional[Dict[str, str]] = None,
    ) -> str:
        """Publish a JSON message; returns the SNS message id."""
        if not topic_arn:
            raise ValueError("No SNS topic configured")
        kwargs: Dict[str, Any] = {
            "TopicArn": topic_arn,
            "Message": json.dumps(message, default=json_default),
        }
        if attributes:
            kwargs["MessageAttributes"] = {
                name: {"DataType": "String", "StringValue": value}
                for name, value in attributes.items()
            }
        resp = self.client.publish(**kwargs)
        message_id = resp.get("MessageId")
        logger.info("Published message %s on topic %s", message_id, topic_arn)
        return message_id

    def publish_best_effort(
        self,
        topic_arn: Optional[str],
        message: Dict[str, Any],
        attributes: Optional[Dict[str, str]] = None,
    ) -> PublishResult:
        try:
            message_id = self.publish(topic_arn, message, attributes)
        except (BotoCoreError, ClientError, ValueError) as e:
            logger.error("Error publishing SNS event on %s: %s", topic_arn, e)
            return PublishResult(published=False, error=str(e))
        return PublishResult(published=True, message_id=message_id)
