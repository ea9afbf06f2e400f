from unittest.mock import MagicMock

import pytest

from asb_connector.infrastructure.messaging.message_receiver import MessageReceiver
from asb_connector.infrastructure.messaging.message_sender import MessageSender
from asb_connector.infrastructure.messaging.servicebus_connector import ServiceBusConnector
from asb_connector.tests.unit_tests.sdk_doubles import CONNECTION_STRING
from shared.config.settings import Settings
from shared.models.connection import ReceiveMode
from shared.utils.exceptions import ConnectionConfigurationException


class TestServiceBusConnector:

    @pytest.fixture
    def connector_settings(self):
        return Settings(
            service_bus_connection_string=CONNECTION_STRING,
            receive_mode="PEEK_LOCK",
            max_auto_lock_renew_duration=0,
            prefetch_count=5,
            server_wait_time=5,
            retry_max_retries=2,
        )

    @pytest.fixture
    def create_client(self, servicebus_client, monkeypatch):
        factory = MagicMock(return_value=servicebus_client)
        monkeypatch.setattr(
            "asb_connector.infrastructure.messaging.servicebus_connector.create_servicebus_client",
            factory
        )
        return factory

    @pytest.fixture
    def connector(self, connector_settings, create_client):
        return ServiceBusConnector(settings=connector_settings)

    def test_requires_credentials(self):
        with pytest.raises(ConnectionConfigurationException):
            ServiceBusConnector(settings=Settings(service_bus_connection_string=None, service_bus_host_name=None))

    def test_receivers_and_senders_share_one_client(self, connector, create_client, servicebus_client):
        receiver = connector.get_queue_receiver("orders")
        subscription_receiver = connector.get_subscription_receiver("invoices", "audit",
                                                                    receive_mode=ReceiveMode.RECEIVE_AND_DELETE)
        sender = connector.get_topic_sender("invoices")

        create_client.assert_called_once()
        assert create_client.call_args.kwargs["retry_options"].max_retries == 2
        assert isinstance(receiver, MessageReceiver)
        assert isinstance(sender, MessageSender)
        assert receiver.servicebus_client is servicebus_client
        assert receiver.configuration.prefetch_count == 5
        assert subscription_receiver.configuration.receive_mode is ReceiveMode.RECEIVE_AND_DELETE
        assert subscription_receiver.entity_path == "invoices/subscriptions/audit"

    def test_close_closes_everything(self, connector, servicebus_client, sdk_receiver, sdk_sender):
        receiver = connector.get_queue_receiver("orders")
        sender = connector.get_queue_sender("orders")

        connector.close()

        assert receiver.closed
        assert sender.closed
        sdk_receiver.close.assert_called_once()
        sdk_sender.close.assert_called_once()
        servicebus_client.close.assert_called_once()
        assert connector.receivers == []
        assert connector.senders == []

    def test_close_continues_after_receiver_failure(self, connector, servicebus_client, sdk_receiver, sdk_sender):
        sdk_receiver.close.side_effect = RuntimeError("link detached")
        connector.get_queue_receiver("orders")
        sender = connector.get_queue_sender("orders")

        connector.close()

        assert sender.closed
        servicebus_client.close.assert_called_once()

    def test_closed_handles_are_no_longer_tracked(self, connector):
        for _ in range(100):
            connector.get_queue_receiver("orders").close()
            connector.get_queue_sender("orders").close()

        assert connector.receivers == []
        assert connector.senders == []
        assert len(connector._receivers) <= 1
        assert len(connector._senders) <= 1

        receiver = connector.get_queue_receiver("orders")

        assert connector.receivers == [receiver]
        assert len(connector._receivers) == 1

    def test_receivers_use_configured_wait_time(self, connector, sdk_receiver):
        receiver = connector.get_queue_receiver("orders")

        receiver.receive()

        sdk_receiver.receive_messages.assert_called_once_with(max_message_count=1, max_wait_time=5)
