from unittest.mock import MagicMock

import pytest


@pytest.fixture
def sdk_receiver():
    """SDK receiver double returning no messages by default."""
    receiver = MagicMock(name="ServiceBusReceiver")
    receiver.receive_messages.return_value = []
    receiver.receive_deferred_messages.return_value = []
    return receiver


@pytest.fixture
def sdk_sender():
    return MagicMock(name="ServiceBusSender")


@pytest.fixture
def servicebus_client(sdk_receiver, sdk_sender):
    """ServiceBusClient double handing out the receiver and sender doubles."""
    client = MagicMock(name="ServiceBusClient")
    client.get_queue_receiver.return_value = sdk_receiver
    client.get_subscription_receiver.return_value = sdk_receiver
    client.get_queue_sender.return_value = sdk_sender
    client.get_topic_sender.return_value = sdk_sender
    return client
