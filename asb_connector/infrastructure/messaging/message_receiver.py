"""
Synchronous message receiver bound to a queue or a topic subscription.
"""
from datetime import datetime
from typing import Optional

from azure.servicebus import ServiceBusClient, ServiceBusReceivedMessage

from asb_connector.application.interfaces.service_interfaces import MessageReceiverInterface
from asb_connector.infrastructure.client_factory import create_servicebus_client
from asb_connector.infrastructure.messaging.lock_token_registry import LockTokenRegistry
from shared.models.connection import ReceiverConfiguration
from shared.models.message import Message, MessageBatch
from shared.utils.constants import Operations
from shared.utils.exceptions import (
    ReceiverClosedException,
    ServiceBusConnectionException,
    ServiceBusOperationException,
)
from shared.utils.logging_config import get_logger

logger = get_logger(__name__)


class MessageReceiver(MessageReceiverInterface):
    """
    Receives messages and settles them by lock token.

    Every message handed out is registered under its lock token, so that
    complete, abandon, dead-letter, defer and renew-lock can be addressed by
    the token alone. SDK failures are re-raised as
    ServiceBusOperationException; nothing is retried here beyond the SDK's
    own retry policy.
    """

    def __init__(self, configuration: ReceiverConfiguration, servicebus_client: Optional[ServiceBusClient] = None):
        """
        Build and open the receiver.

        Args:
            configuration: Receiver configuration
            servicebus_client: Optional shared client. When omitted the receiver
                builds its own client and closes it on close().
        """
        self.configuration = configuration
        self._owns_client = servicebus_client is None
        self._lock_tokens = LockTokenRegistry()
        self._closed = False

        if servicebus_client is None:
            servicebus_client = create_servicebus_client(
                connection_string=configuration.connection_string,
                fully_qualified_namespace=configuration.fully_qualified_namespace,
                retry_options=configuration.retry_options,
            )
        self.servicebus_client = servicebus_client

        options = configuration.receive_mode.receiver_options(configuration.max_auto_lock_renew_duration)
        self._auto_lock_renewer = options.get("auto_lock_renewer")
        try:
            self.receiver = self._build_receiver(options)
            self.receiver.__enter__()
        except Exception as e:
            logger.error(f"Failed to open receiver for {configuration.entity_path}: {e}")
            self._release()
            raise ServiceBusConnectionException(
                f"Failed to open receiver for {configuration.entity_path}: {type(e).__name__}: {e}"
            ) from e
        logger.debug(f"ServiceBusReceiver initialized for {self.entity_path} in {configuration.receive_mode.value} mode")

    def _build_receiver(self, options: dict):
        if self.configuration.is_queue:
            return self.servicebus_client.get_queue_receiver(
                queue_name=self.configuration.queue_name,
                prefetch_count=self.configuration.prefetch_count,
                **options
            )
        return self.servicebus_client.get_subscription_receiver(
            topic_name=self.configuration.topic_name,
            subscription_name=self.configuration.subscription_name,
            prefetch_count=self.configuration.prefetch_count,
            **options
        )

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
            raise ReceiverClosedException(f"Receiver for {self.entity_path} is closed")

    def _resolve(self, lock_token: str) -> ServiceBusReceivedMessage:
        self._ensure_open()
        return self._lock_tokens.resolve(lock_token)

    def _translate(self, received: ServiceBusReceivedMessage) -> Message:
        message = Message.from_received(received)
        self._lock_tokens.register(received.lock_token, received)
        return message

    def _wait_time(self, server_wait_time: Optional[float]) -> float:
        if server_wait_time is None:
            return self.configuration.default_wait_time
        return server_wait_time

    def _wrap(self, operation: str, error: Exception) -> ServiceBusOperationException:
        logger.error(f"{operation} failed on {self.entity_path}: {type(error).__name__}: {error}")
        return ServiceBusOperationException.from_error(operation, error)

    def receive(self, server_wait_time: Optional[int] = None) -> Optional[Message]:
        """
        Receive at most one message.

        Args:
            server_wait_time: Seconds to wait for a message. None uses the configured
                server_wait_time, or the retry try timeout when that is unset.

        Returns:
            The received message, or None if nothing arrived in time
        """
        self._ensure_open()
        server_wait_time = self._wait_time(server_wait_time)
        try:
            received = self.receiver.receive_messages(max_message_count=1, max_wait_time=server_wait_time)
        except Exception as e:
            raise self._wrap(Operations.RECEIVE, e) from e

        if not received:
            return None
        message = received[-1]
        logger.debug(f"Received message with messageId: {message.message_id}")
        return self._translate(message)

    def receive_batch(self, max_message_count: int, server_wait_time: Optional[int] = None) -> MessageBatch:
        """
        Receive up to max_message_count messages.

        The batch may hold fewer messages than requested. A wait cut short by
        InterruptedError yields an empty batch flagged as interrupted. A
        message whose body cannot be translated fails the whole call with
        UnsupportedBodyTypeException; its lock token is not registered.
        """
        if max_message_count < 1:
            raise ValueError("max_message_count must be a positive integer")
        self._ensure_open()
        server_wait_time = self._wait_time(server_wait_time)
        logger.debug(f"Waiting up to {server_wait_time} seconds for messages from {self.entity_path}")
        try:
            received = self.receiver.receive_messages(
                max_message_count=max_message_count,
                max_wait_time=server_wait_time
            )
        except InterruptedError:
            logger.warning(f"Batch receive from {self.entity_path} was interrupted")
            return MessageBatch(interrupted=True)
        except Exception as e:
            raise self._wrap(Operations.RECEIVE_BATCH, e) from e

        messages = [Message.from_received(message) for message in received]
        for message in received:
            self._lock_tokens.register(message.lock_token, message)
        return MessageBatch(message_count=len(messages), messages=messages)

    def complete(self, lock_token: str) -> None:
        """Complete the message issued with lock_token."""
        message = self._resolve(lock_token)
        try:
            self.receiver.complete_message(message)
        except Exception as e:
            raise self._wrap(Operations.COMPLETE, e) from e
        logger.debug(f"Completed the message(Id: {message.message_id}) with lockToken {lock_token}")

    def abandon(self, lock_token: str) -> None:
        """Abandon the message so it becomes available again."""
        message = self._resolve(lock_token)
        try:
            self.receiver.abandon_message(message)
        except Exception as e:
            raise self._wrap(Operations.ABANDON, e) from e
        logger.debug(f"Done abandoning a message(Id: {message.message_id}) using its lock token from {self.entity_path}")

    def dead_letter(self, lock_token: str, reason: Optional[str] = None, description: Optional[str] = None) -> None:
        """
        Move the message to the dead-letter sub-queue.

        Args:
            lock_token: Message lock token
            reason: Optional dead-letter reason
            description: Optional dead-letter error description
        """
        message = self._resolve(lock_token)
        try:
            self.receiver.dead_letter_message(message, reason=reason, error_description=description)
        except Exception as e:
            raise self._wrap(Operations.DEAD_LETTER, e) from e
        logger.debug(f"Done dead-lettering a message(Id: {message.message_id}) using its lock token from {self.entity_path}")

    def defer(self, lock_token: str) -> None:
        """Defer the message. It can later be fetched with receive_deferred()."""
        message = self._resolve(lock_token)
        try:
            self.receiver.defer_message(message)
        except Exception as e:
            raise self._wrap(Operations.DEFER, e) from e
        logger.debug(f"Done deferring a message(Id: {message.message_id}) using its lock token from {self.entity_path}")

    def receive_deferred(self, sequence_number: int) -> Optional[Message]:
        """
        Receive a deferred message by the sequence number the broker assigned to it.

        Returns:
            The message, or None if no deferred message has that sequence number
        """
        self._ensure_open()
        try:
            received = self.receiver.receive_deferred_messages(sequence_numbers=[sequence_number])
        except Exception as e:
            raise self._wrap(Operations.RECEIVE_DEFERRED, e) from e

        if not received:
            return None
        logger.debug(f"Received deferred message using its sequenceNumber from {self.entity_path}")
        return self._translate(received[0])

    def renew_lock(self, lock_token: str) -> datetime:
        """Renew the message lock and return the new locked-until time."""
        message = self._resolve(lock_token)
        try:
            locked_until = self.receiver.renew_message_lock(message)
        except Exception as e:
            raise self._wrap(Operations.RENEW_LOCK, e) from e
        logger.debug(f"Done renewing a message(Id: {message.message_id}) using its lock token from {self.entity_path}")
        return locked_until

    def _release(self) -> None:
        if self._auto_lock_renewer is not None:
            self._auto_lock_renewer.close()
        if self._owns_client:
            self.servicebus_client.close()

    def close(self) -> None:
        """Close the receiver. Later operations raise ReceiverClosedException."""
        if self._closed:
            return
        self._closed = True
        self._lock_tokens.clear()
        try:
            self.receiver.close()
        except Exception as e:
            raise self._wrap(Operations.CLOSE, e) from e
        finally:
            self._release()
        logger.debug(f"Closed the receiver for {self.entity_path}")
