"""
Synchronous message sender bound to a queue or a topic.
"""
from datetime import datetime
from typing import List, Optional, Sequence

from azure.servicebus import ServiceBusClient
from azure.servicebus.exceptions import MessageSizeExceededError

from asb_connector.application.interfaces.service_interfaces import MessageSenderInterface
from asb_connector.infrastructure.client_factory import create_servicebus_client
from shared.models.connection import SenderConfiguration
from shared.models.message import OutboundMessage
from shared.utils.constants import Operations
from shared.utils.exceptions import (
    SenderClosedException,
    ServiceBusConnectionException,
    ServiceBusOperationException,
)
from shared.utils.logging_config import get_logger

logger = get_logger(__name__)


class MessageSender(MessageSenderInterface):
    """Sends, batches and schedules messages on a single entity."""

    def __init__(self, configuration: SenderConfiguration, servicebus_client: Optional[ServiceBusClient] = None):
        self.configuration = configuration
        self._owns_client = servicebus_client is None
        self._closed = False

        if servicebus_client is None:
            servicebus_client = create_servicebus_client(
                connection_string=configuration.connection_string,
                fully_qualified_namespace=configuration.fully_qualified_namespace,
                retry_options=configuration.retry_options,
            )
        self.servicebus_client = servicebus_client

        try:
            if configuration.is_queue:
                self.sender = self.servicebus_client.get_queue_sender(queue_name=configuration.queue_name)
            else:
                self.sender = self.servicebus_client.get_topic_sender(topic_name=configuration.topic_name)
            self.sender.__enter__()
        except Exception as e:
            logger.error(f"Failed to open sender for {configuration.entity_path}: {e}")
            if self._owns_client:
                self.servicebus_client.close()
            raise ServiceBusConnectionException(
                f"Failed to open sender for {configuration.entity_path}: {type(e).__name__}: {e}"
            ) from e
        logger.debug(f"ServiceBusSender initialized for {self.entity_path}")

    @property
    def entity_path(self) -> str:
        return self.configuration.entity_path

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise SenderClosedException(f"Sender for {self.entity_path} is closed")

    def _wrap(self, operation: str, error: Exception) -> ServiceBusOperationException:
        logger.error(f"{operation} failed on {self.entity_path}: {type(error).__name__}: {error}")
        return ServiceBusOperationException.from_error(operation, error)

    def send(self, message: OutboundMessage) -> None:
        """Send a single message."""
        self._ensure_open()
        try:
            self.sender.send_messages(message.to_service_bus_message())
        except Exception as e:
            raise self._wrap(Operations.SEND, e) from e
        logger.debug(f"Sent message(Id: {message.message_id}) to {self.entity_path}")

    def send_batch(self, messages: Sequence[OutboundMessage]) -> int:
        """
        Send messages packed into SDK batches.

        A new batch is started whenever the current one is full. A message
        too large for an empty batch fails the whole call.

        Returns:
            Number of messages sent
        """
        self._ensure_open()
        if not messages:
            return 0

        sent = 0
        batch_count = 0
        try:
            batch = self.sender.create_message_batch()
            for message in messages:
                sb_message = message.to_service_bus_message()
                try:
                    batch.add_message(sb_message)
                except MessageSizeExceededError:
                    if len(batch) == 0:
                        raise
                    self.sender.send_messages(batch)
                    sent += len(batch)
                    batch_count += 1
                    batch = self.sender.create_message_batch()
                    batch.add_message(sb_message)
            if len(batch) > 0:
                self.sender.send_messages(batch)
                sent += len(batch)
                batch_count += 1
        except Exception as e:
            raise self._wrap(Operations.SEND_BATCH, e) from e
        logger.info(f"Sent {sent} messages in {batch_count} batches to {self.entity_path}")
        return sent

    def schedule(self, message: OutboundMessage, enqueue_time: datetime) -> List[int]:
        """Schedule a message for enqueue_time and return its sequence numbers."""
        self._ensure_open()
        try:
            sequence_numbers = self.sender.schedule_messages(message.to_service_bus_message(), enqueue_time)
        except Exception as e:
            raise self._wrap(Operations.SCHEDULE, e) from e
        logger.debug(f"Scheduled message(Id: {message.message_id}) on {self.entity_path} for {enqueue_time.isoformat()}")
        return list(sequence_numbers)

    def cancel_scheduled(self, sequence_numbers: Sequence[int]) -> None:
        """Cancel scheduled messages by sequence number."""
        self._ensure_open()
        try:
            self.sender.cancel_scheduled_messages(list(sequence_numbers))
        except Exception as e:
            raise self._wrap(Operations.CANCEL_SCHEDULED, e) from e
        logger.debug(f"Cancelled {len(sequence_numbers)} scheduled messages on {self.entity_path}")

    def close(self) -> None:
        """Close the sender. Later operations raise SenderClosedException."""
        if self._closed:
            return
        self._closed = True
        try:
            self.sender.close()
        except Exception as e:
            raise self._wrap(Operations.CLOSE, e) from e
        finally:
            if self._owns_client:
                self.servicebus_client.close()
        logger.debug(f"Closed the sender for {self.entity_path}")
