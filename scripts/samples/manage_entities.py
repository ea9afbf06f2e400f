import argparse
import traceback

from asb_connector.infrastructure.administration.servicebus_administrator import ServiceBusAdministrator
from shared.config.settings import settings
from shared.utils.logging_config import get_logger, setup_logging

setup_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        log_to_console=settings.log_to_console
    )
logger = get_logger(__name__)

QUEUE_NAME = settings.service_bus_queue_name or "connector-samples"
TOPIC_NAME = settings.service_bus_topic_name or "connector-samples-topic"
SUBSCRIPTION_NAME = settings.service_bus_subscription_name or "connector-samples-subscription"


def create(administrator: ServiceBusAdministrator):
    if not administrator.queue_exists(QUEUE_NAME):
        administrator.create_queue(QUEUE_NAME, max_delivery_count=10, dead_lettering_on_message_expiration=True)
        print(f"Created queue '{QUEUE_NAME}'")

    if not administrator.topic_exists(TOPIC_NAME):
        administrator.create_topic(TOPIC_NAME)
        print(f"Created topic '{TOPIC_NAME}'")

    if not administrator.subscription_exists(TOPIC_NAME, SUBSCRIPTION_NAME):
        administrator.create_subscription(TOPIC_NAME, SUBSCRIPTION_NAME, max_delivery_count=10)
        administrator.create_rule(
            TOPIC_NAME, SUBSCRIPTION_NAME, "orders",
            sql_filter="subject = 'order.created'",
            replace_default_rule=True
        )
        print(f"Created subscription '{SUBSCRIPTION_NAME}' with rule 'orders'")


def show(administrator: ServiceBusAdministrator):
    for queue in administrator.list_queues():
        runtime = administrator.get_queue_runtime_properties(queue["name"])
        print(f"Queue {queue['name']}: active={runtime.get('active_message_count')} "
              f"dead-lettered={runtime.get('dead_letter_message_count')}")
    for topic in administrator.list_topics():
        print(f"Topic {topic['name']}")
        for subscription in administrator.list_subscriptions(topic["name"]):
            rules = administrator.list_rules(topic["name"], subscription["name"])
            print(f"  Subscription {subscription['name']} rules: {[rule['name'] for rule in rules]}")


def delete(administrator: ServiceBusAdministrator):
    if administrator.subscription_exists(TOPIC_NAME, SUBSCRIPTION_NAME):
        administrator.delete_subscription(TOPIC_NAME, SUBSCRIPTION_NAME)
    if administrator.topic_exists(TOPIC_NAME):
        administrator.delete_topic(TOPIC_NAME)
    if administrator.queue_exists(QUEUE_NAME):
        administrator.delete_queue(QUEUE_NAME)
    print("Sample entities deleted.")


def main():
    parser = argparse.ArgumentParser(description="Azure Service Bus entity management samples")
    parser.add_argument("action", type=str, help="Action to perform: create, show, delete",
                        choices=["create", "show", "delete"])
    args = parser.parse_args()

    actions = {
        "create": create,
        "show": show,
        "delete": delete,
    }

    logger.info(f"Running entity management action: {args.action}")
    with ServiceBusAdministrator() as administrator:
        try:
            actions[args.action](administrator)
        except Exception as e:
            print(f"Error running '{args.action}': {e}")
            traceback.print_exc()


if __name__ == "__main__":
    main()
