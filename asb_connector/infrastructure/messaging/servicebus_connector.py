from typing import Optional

from azure.servicebus import ServiceBusClient

from asb_connector.infrastructure.client_factory import create_servicebus_client
from asb_connector.infrastructure.messaging.message_receiver import MessageReceiver
from asb_connector.infrastructure.messaging.message_sender import MessageSender
from shared.config.settings import Settings, settings as default_settings
from shared.models.connection import ReceiveMode, ReceiverConfiguration, RetryOptions, SenderConfiguration
from shared.utils.exceptions import ConnectionConfigurationException
from shared.utils.logging_config import get_logger

logger = get_logger(__name__)


class ServiceBusConnector:
    """
    Hands out receivers and senders that share one ServiceBusClient.

    Every open receiver and sender created here is tracked and closed
    together with the connector. Handles the caller closes directly are
    dropped from tracking.
    """

    def __init__(self, connection_string: str = None, host_name: str = None,
                 retry_options: RetryOptions = None, settings: Settings = None):
        self.settings = settings or default_settings
        self.connection_string = connection_string or self.settings.service_bus_connection_string
        self.host_name = host_name or self.settings.service_bus_host_name
        if not self.connection_string and not self.host_name:
            raise ConnectionConfigurationException(
                "Either a connection string or a fully qualified namespace must be provided"
            )
        self.retry_options = retry_options or RetryOptions.from_settings(self.settings)
        self._receivers: list[MessageReceiver] = []
        self._senders: list[MessageSender] = []
        self._servicebus_client: Optional[ServiceBusClient] = None

    @property
    def servicebus_client(self) -> ServiceBusClient:
        if self._servicebus_client is None:
            self._servicebus_client = create_servicebus_client(
                connection_string=self.connection_string,
                fully_qualified_namespace=self.host_name,
                retry_options=self.retry_options,
            )
        return self._servicebus_client

    @property
    def receivers(self) -> list[MessageReceiver]:
        """Receivers opened here that are still open."""
        return [receiver for receiver in self._receivers if not receiver.closed]

    @property
    def senders(self) -> list[MessageSender]:
        """Senders opened here that are still open."""
        return [sender for sender in self._senders if not sender.closed]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _receiver_configuration(self, **entity) -> ReceiverConfiguration:
        return ReceiverConfiguration(
            connection_string=self.connection_string,
            fully_qualified_namespace=self.host_name,
            server_wait_time=self.settings.server_wait_time,
            retry_options=self.retry_options,
            **entity
        )

    def _track_receiver(self, configuration: ReceiverConfiguration) -> MessageReceiver:
        receiver = MessageReceiver(configuration, servicebus_client=self.servicebus_client)
        self._receivers = self.receivers + [receiver]
        logger.info(f"Opened receiver for {receiver.entity_path}")
        return receiver

    def get_queue_receiver(self, queue_name: str, receive_mode: ReceiveMode | str = None,
                           max_auto_lock_renew_duration: int = None, prefetch_count: int = None) -> MessageReceiver:
        """Open a receiver on a queue. Unset options fall back to settings."""
        configuration = self._receiver_configuration(
            queue_name=queue_name,
            receive_mode=receive_mode or self.settings.receive_mode,
            max_auto_lock_renew_duration=self._or_default(max_auto_lock_renew_duration, self.settings.max_auto_lock_renew_duration),
            prefetch_count=self._or_default(prefetch_count, self.settings.prefetch_count),
        )
        return self._track_receiver(configuration)

    def get_subscription_receiver(self, topic_name: str, subscription_name: str, receive_mode: ReceiveMode | str = None,
                                  max_auto_lock_renew_duration: int = None, prefetch_count: int = None) -> MessageReceiver:
        """Open a receiver on a topic subscription. Unset options fall back to settings."""
        configuration = self._receiver_configuration(
            topic_name=topic_name,
            subscription_name=subscription_name,
            receive_mode=receive_mode or self.settings.receive_mode,
            max_auto_lock_renew_duration=self._or_default(max_auto_lock_renew_duration, self.settings.max_auto_lock_renew_duration),
            prefetch_count=self._or_default(prefetch_count, self.settings.prefetch_count),
        )
        return self._track_receiver(configuration)

    def _track_sender(self, configuration: SenderConfiguration) -> MessageSender:
        sender = MessageSender(configuration, servicebus_client=self.servicebus_client)
        self._senders = self.senders + [sender]
        logger.info(f"Opened sender for {sender.entity_path}")
        return sender

    def get_queue_sender(self, queue_name: str) -> MessageSender:
        """Open a sender on a queue."""
        return self._track_sender(SenderConfiguration(
            connection_string=self.connection_string,
            fully_qualified_namespace=self.host_name,
            queue_name=queue_name,
            retry_options=self.retry_options,
        ))

    def get_topic_sender(self, topic_name: str) -> MessageSender:
        """Open a sender on a topic."""
        return self._track_sender(SenderConfiguration(
            connection_string=self.connection_string,
            fully_qualified_namespace=self.host_name,
            topic_name=topic_name,
            retry_options=self.retry_options,
        ))

    @staticmethod
    def _or_default(value, default):
        return default if value is None else value

    def close(self) -> None:
        """Close every tracked receiver and sender, then the shared client."""
        for receiver in self._receivers:
            try:
                receiver.close()
            except Exception as e:
                logger.warning(f"Error closing receiver for {receiver.entity_path}: {e}")
        for sender in self._senders:
            try:
                sender.close()
            except Exception as e:
                logger.warning(f"Error closing sender for {sender.entity_path}: {e}")
        if self._receivers or self._senders:
            logger.info(f"All {len(self._receivers)} receivers and {len(self._senders)} senders closed.")
        self._receivers.clear()
        self._senders.clear()

        if self._servicebus_client is not None:
            self._servicebus_client.close()
            self._servicebus_client = None
            logger.info("Service Bus client closed.")
