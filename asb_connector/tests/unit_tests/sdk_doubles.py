"""Stand-ins for Service Bus SDK objects used across the unit tests."""
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from azure.servicebus import ServiceBusMessageState
from azure.servicebus.amqp import AmqpMessageBodyType

CONNECTION_STRING = (
    "Endpoint=sb://connector-tests.servicebus.windows.net/;"
    "SharedAccessKeyName=RootManageSharedAccessKey;SharedAccessKey=c2VjcmV0"
)


def make_received_message(
    body=b'{"order_id": "A-100"}',
    body_type=AmqpMessageBodyType.DATA,
    sequence_number=1,
    lock_token="default",
    application_properties=None,
    **overrides
):
    """Build a stand-in for an SDK ServiceBusReceivedMessage."""
    message = MagicMock(name=f"received-{sequence_number}")
    message.body_type = body_type
    message.body = [body] if body_type == AmqpMessageBodyType.DATA else body
    message.content_type = "application/json"
    message.message_id = f"msg-{sequence_number}"
    message.to = None
    message.reply_to = None
    message.reply_to_session_id = None
    message.subject = "order.created"
    message.session_id = None
    message.correlation_id = "corr-1"
    message.partition_key = None
    message.time_to_live = timedelta(minutes=10)
    message.sequence_number = sequence_number
    message.lock_token = uuid.uuid4() if lock_token == "default" else lock_token
    message.delivery_count = 1
    message.enqueued_time_utc = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    message.enqueued_sequence_number = sequence_number
    message.locked_until_utc = datetime(2024, 5, 1, 12, 1, tzinfo=timezone.utc)
    message.dead_letter_error_description = None
    message.dead_letter_reason = None
    message.dead_letter_source = None
    message.state = ServiceBusMessageState.ACTIVE
    message.application_properties = application_properties if application_properties is not None else {}
    for key, value in overrides.items():
        setattr(message, key, value)
    return message


