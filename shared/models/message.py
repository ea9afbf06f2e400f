"""
Message records exchanged with connector callers.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from azure.servicebus import ServiceBusMessage

from shared.utils.convert import (
    convert_application_properties,
    convert_message_body,
    convert_property_value,
    to_serializable,
)


@dataclass
class Message:
    """A received message, translated from the SDK's ServiceBusReceivedMessage."""

    body: Any = None
    content_type: Optional[str] = None
    message_id: Optional[str] = None
    to: Optional[str] = None
    reply_to: Optional[str] = None
    reply_to_session_id: Optional[str] = None
    subject: Optional[str] = None
    session_id: Optional[str] = None
    correlation_id: Optional[str] = None
    partition_key: Optional[str] = None
    time_to_live: Optional[int] = None  # seconds
    sequence_number: Optional[int] = None
    lock_token: Optional[str] = None
    delivery_count: Optional[int] = None
    enqueued_time: Optional[datetime] = None
    enqueued_sequence_number: Optional[int] = None
    locked_until: Optional[datetime] = None
    dead_letter_error_description: Optional[str] = None
    dead_letter_reason: Optional[str] = None
    dead_letter_source: Optional[str] = None
    state: Optional[str] = None
    application_properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to a flat dictionary with timestamps as ISO strings."""
        result = asdict(self)
        return {key: to_serializable(value) for key, value in result.items()}

    @classmethod
    def from_received(cls, received) -> "Message":
        """Translate an SDK received message."""
        time_to_live = received.time_to_live
        lock_token = received.lock_token
        state = received.state
        return cls(
            body=convert_message_body(received),
            content_type=received.content_type,
            message_id=received.message_id,
            to=received.to,
            reply_to=received.reply_to,
            reply_to_session_id=received.reply_to_session_id,
            subject=received.subject,
            session_id=received.session_id,
            correlation_id=received.correlation_id,
            partition_key=received.partition_key,
            time_to_live=int(time_to_live.total_seconds()) if time_to_live is not None else None,
            sequence_number=received.sequence_number,
            lock_token=str(lock_token) if lock_token is not None else None,
            delivery_count=received.delivery_count,
            enqueued_time=received.enqueued_time_utc,
            enqueued_sequence_number=received.enqueued_sequence_number,
            locked_until=received.locked_until_utc,
            dead_letter_error_description=received.dead_letter_error_description,
            dead_letter_reason=received.dead_letter_reason,
            dead_letter_source=received.dead_letter_source,
            state=getattr(state, "name", None) if state is not None else None,
            application_properties=convert_application_properties(received.application_properties),
        )


@dataclass
class MessageBatch:
    """Result of a batch receive. ``interrupted`` marks a wait cut short by an interrupt."""

    message_count: int = 0
    messages: List[Message] = field(default_factory=list)
    interrupted: bool = False

    def to_dict(self) -> dict:
        return {
            "message_count": self.message_count,
            "messages": [message.to_dict() for message in self.messages],
            "interrupted": self.interrupted,
        }


@dataclass
class OutboundMessage:
    """A message to send. Dict and list bodies are sent as JSON."""

    body: Any = None
    content_type: Optional[str] = None
    message_id: Optional[str] = None
    to: Optional[str] = None
    reply_to: Optional[str] = None
    reply_to_session_id: Optional[str] = None
    subject: Optional[str] = None
    session_id: Optional[str] = None
    correlation_id: Optional[str] = None
    partition_key: Optional[str] = None
    time_to_live: Optional[int] = None  # seconds
    scheduled_enqueue_time: Optional[datetime] = None
    application_properties: Dict[str, Any] = field(default_factory=dict)

    def _encoded_body(self):
        if self.body is None or isinstance(self.body, (bytes, str)):
            return self.body, self.content_type
        if isinstance(self.body, (dict, list)):
            return json.dumps(self.body, default=str), self.content_type or "application/json"
        return str(self.body), self.content_type

    def to_service_bus_message(self) -> ServiceBusMessage:
        """Translate to an SDK ServiceBusMessage."""
        body, content_type = self._encoded_body()
        application_properties = {
            key: convert_property_value(value)
            for key, value in self.application_properties.items()
            if value is not None
        }
        return ServiceBusMessage(
            body=body,
            application_properties=application_properties or None,
            session_id=self.session_id,
            message_id=self.message_id,
            scheduled_enqueue_time_utc=self.scheduled_enqueue_time,
            time_to_live=timedelta(seconds=self.time_to_live) if self.time_to_live is not None else None,
            content_type=content_type,
            correlation_id=self.correlation_id,
            subject=self.subject,
            partition_key=self.partition_key,
            to=self.to,
            reply_to=self.reply_to,
            reply_to_session_id=self.reply_to_session_id,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "OutboundMessage":
        """Create from a dictionary, ignoring unknown keys."""
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})
