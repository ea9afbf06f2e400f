"""
Translation between Service Bus SDK values and plain Python values.

Translation is deliberately lossy: body values and application property
values outside the supported scalar types are dropped or stringified rather
than leaking SDK object graphs to callers.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from azure.servicebus.amqp import AmqpMessageBodyType

from shared.utils.exceptions import UnsupportedBodyTypeException
from shared.utils.logging_config import get_logger

logger = get_logger(__name__)

# Scalar types an AMQP value body may carry through translation
SUPPORTED_VALUE_TYPES = (int, float, str, bool, Decimal, date, UUID)

# Scalar types an application property keeps as-is
SUPPORTED_PROPERTY_TYPES = (str, int, float, bool)


def convert_amqp_value(message_id: Optional[str], value: Any) -> Any:
    """Pass an AMQP value body through if its type is supported, otherwise drop it."""
    if value is None:
        return None
    if isinstance(value, SUPPORTED_VALUE_TYPES):
        return value
    logger.debug(f"Dropping unsupported AMQP value of type {type(value).__name__} in message {message_id}")
    return None


def convert_message_body(message) -> Any:
    """
    Extract the body of a received message.

    DATA bodies are returned as bytes, VALUE bodies go through
    ``convert_amqp_value``. SEQUENCE bodies are not supported.
    """
    body_type = message.body_type
    if body_type == AmqpMessageBodyType.DATA:
        return b"".join(section for section in message.body)
    if body_type == AmqpMessageBodyType.VALUE:
        logger.debug(f"Received a message with messageId {message.message_id} AMQPMessageBodyType: {body_type}")
        return convert_amqp_value(message.message_id, message.body)
    raise UnsupportedBodyTypeException(
        f"Invalid message body type {body_type} for message {message.message_id}"
    )


def convert_property_value(value: Any) -> Any:
    """Keep supported scalars, decode bytes, stringify everything else."""
    if value is None or isinstance(value, SUPPORTED_PROPERTY_TYPES):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def convert_application_properties(properties: Optional[Dict[Any, Any]]) -> Dict[str, Any]:
    """Copy SDK application properties into a plain string-keyed dict."""
    converted = {}
    if not properties:
        return converted
    for key, value in properties.items():
        if isinstance(key, bytes):
            key = key.decode("utf-8", errors="replace")
        converted[str(key)] = convert_property_value(value)
    return converted


def to_serializable(value: Any) -> Any:
    """Render timestamps, durations, enums and identifiers as plain values for dict output."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


def convert_entity_properties(properties: Any) -> Dict[str, Any]:
    """Copy the public attributes of an SDK management model into a plain dict."""
    entity = {}
    for key, value in vars(properties).items():
        if key.startswith("_"):
            continue
        value = to_serializable(value)
        if not isinstance(value, (str, int, float, bool, type(None))):
            value = str(value)
        entity[key] = value
    return entity
