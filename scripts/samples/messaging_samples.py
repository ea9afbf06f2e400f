import argparse
import traceback
import uuid
from datetime import datetime, timedelta, timezone

from asb_connector.infrastructure.messaging.servicebus_connector import ServiceBusConnector
from shared.config.settings import settings
from shared.models.connection import ReceiveMode
from shared.models.message import OutboundMessage
from shared.utils.logging_config import get_logger, setup_logging

setup_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        log_to_console=settings.log_to_console
    )
logger = get_logger(__name__)

QUEUE_NAME = settings.service_bus_queue_name or "connector-samples"


def sample_message(index: int = 0) -> OutboundMessage:
    return OutboundMessage(
        body={"order_id": str(uuid.uuid4()), "index": index},
        subject="order.created",
        message_id=f"sample-{uuid.uuid4()}",
        correlation_id="samples",
        time_to_live=3600,
        application_properties={"source": "samples", "index": index, "priority": 1.5},
    )


def send(connector: ServiceBusConnector, count: int):
    sender = connector.get_queue_sender(QUEUE_NAME)
    if count == 1:
        sender.send(sample_message())
        print(f"Sent one message to '{QUEUE_NAME}'")
    else:
        sent = sender.send_batch([sample_message(i) for i in range(count)])
        print(f"Sent {sent} messages to '{QUEUE_NAME}'")


def schedule(connector: ServiceBusConnector, count: int):
    sender = connector.get_queue_sender(QUEUE_NAME)
    enqueue_time = datetime.now(timezone.utc) + timedelta(minutes=5)
    sequence_numbers = sender.schedule(sample_message(), enqueue_time)
    print(f"Scheduled message for {enqueue_time.isoformat()} with sequence numbers {sequence_numbers}")
    sender.cancel_scheduled(sequence_numbers)
    print("Cancelled the scheduled message")


def receive(connector: ServiceBusConnector, count: int):
    receiver = connector.get_queue_receiver(QUEUE_NAME, receive_mode=ReceiveMode.PEEK_LOCK)
    message = receiver.receive(server_wait_time=settings.server_wait_time)
    if message is None:
        print("No messages received.")
        return
    print(f"Received message: {message.to_dict()}")
    receiver.complete(message.lock_token)
    print(f"Completed message {message.message_id}")


def batch(connector: ServiceBusConnector, count: int):
    receiver = connector.get_queue_receiver(QUEUE_NAME)
    message_batch = receiver.receive_batch(max_message_count=count, server_wait_time=settings.server_wait_time)
    print(f"Received {message_batch.message_count} messages")
    for message in message_batch.messages:
        print(f"  {message.sequence_number}: {message.body}")
        receiver.complete(message.lock_token)


def dead_letter(connector: ServiceBusConnector, count: int):
    receiver = connector.get_queue_receiver(QUEUE_NAME)
    message = receiver.receive(server_wait_time=settings.server_wait_time)
    if message is None:
        print("No messages received.")
        return
    receiver.dead_letter(message.lock_token, reason="SampleReason", description="Dead-lettered by the samples")
    print(f"Dead-lettered message {message.message_id}")


def defer(connector: ServiceBusConnector, count: int):
    receiver = connector.get_queue_receiver(QUEUE_NAME)
    message = receiver.receive(server_wait_time=settings.server_wait_time)
    if message is None:
        print("No messages received.")
        return
    receiver.defer(message.lock_token)
    print(f"Deferred message with sequence number {message.sequence_number}")

    deferred = receiver.receive_deferred(message.sequence_number)
    if deferred is None:
        print("Deferred message is no longer available.")
        return
    locked_until = receiver.renew_lock(deferred.lock_token)
    print(f"Recovered deferred message {deferred.message_id}, locked until {locked_until}")
    receiver.complete(deferred.lock_token)
    print("Completed the deferred message")


def main():
    parser = argparse.ArgumentParser(description="Azure Service Bus connector messaging samples")
    parser.add_argument("action", type=str, help="Sample to run",
                        choices=["send", "schedule", "receive", "batch", "deadletter", "defer"])
    parser.add_argument("--count", type=int, default=1, help="Number of messages to send or receive")
    args = parser.parse_args()

    samples = {
        "send": send,
        "schedule": schedule,
        "receive": receive,
        "batch": batch,
        "deadletter": dead_letter,
        "defer": defer,
    }

    logger.info(f"Running sample: {args.action}")
    with ServiceBusConnector() as connector:
        try:
            samples[args.action](connector, args.count)
        except Exception as e:
            print(f"Error running sample '{args.action}': {e}")
            traceback.print_exc()


if __name__ == "__main__":
    main()
