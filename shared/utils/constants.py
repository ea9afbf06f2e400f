"""
Constants and enumerations for the Service Bus connector.
"""

from enum import Enum


class ReceiveModes:
    """Receive mode names accepted in settings."""
    PEEK_LOCK = "PEEK_LOCK"
    RECEIVE_AND_DELETE = "RECEIVE_AND_DELETE"


class RetryModes:
    """Retry mode names accepted in settings."""
    FIXED = "FIXED"
    EXPONENTIAL = "EXPONENTIAL"


class Operations:
    """Operation names reported in wrapped errors and logs."""
    RECEIVE = "receive"
    RECEIVE_BATCH = "receive_batch"
    RECEIVE_DEFERRED = "receive_deferred"
    COMPLETE = "complete"
    ABANDON = "abandon"
    DEAD_LETTER = "dead_letter"
    DEFER = "defer"
    RENEW_LOCK = "renew_lock"
    CLOSE = "close"
    SEND = "send"
    SEND_BATCH = "send_batch"
    SCHEDULE = "schedule"
    CANCEL_SCHEDULED = "cancel_scheduled"


class EntityKind(str, Enum):
    """Service Bus entity kinds handled by the administrator."""
    QUEUE = "queue"
    TOPIC = "topic"
    SUBSCRIPTION = "subscription"
    RULE = "rule"


DEFAULT_RULE_NAME = "$Default"
