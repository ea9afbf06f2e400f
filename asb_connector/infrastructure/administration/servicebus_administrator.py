"""
Entity management for queues, topics, subscriptions and rules.
"""
from typing import Any, Callable, Dict, List, Optional

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.servicebus.management import (
    CorrelationRuleFilter,
    ServiceBusAdministrationClient,
    SqlRuleAction,
    SqlRuleFilter,
)

from asb_connector.infrastructure.client_factory import create_administration_client
from shared.config.settings import settings
from shared.utils.constants import DEFAULT_RULE_NAME, EntityKind
from shared.utils.convert import convert_entity_properties
from shared.utils.exceptions import (
    EntityAlreadyExistsException,
    EntityNotFoundException,
    ServiceBusOperationException,
)
from shared.utils.logging_config import get_logger

logger = get_logger(__name__)


class ServiceBusAdministrator:
    """
    Creates, inspects and deletes Service Bus entities.

    SDK property models are returned as plain dictionaries. Missing and
    duplicate entities raise EntityNotFoundException and
    EntityAlreadyExistsException; any other SDK failure is wrapped in
    ServiceBusOperationException.
    """

    def __init__(self, connection_string: str = None, host_name: str = None,
                 administration_client: Optional[ServiceBusAdministrationClient] = None):
        self._owns_client = administration_client is None
        self.administration_client = administration_client or create_administration_client(
            connection_string=connection_string or settings.service_bus_connection_string,
            fully_qualified_namespace=host_name or settings.service_bus_host_name,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.administration_client.close()

    def _call(self, operation: str, kind: EntityKind, name: str, func: Callable, *args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except ResourceNotFoundError as e:
            raise EntityNotFoundException(f"{kind.value} '{name}' was not found") from e
        except ResourceExistsError as e:
            raise EntityAlreadyExistsException(f"{kind.value} '{name}' already exists") from e
        except Exception as e:
            logger.error(f"{operation} on {kind.value} '{name}' failed: {type(e).__name__}: {e}")
            raise ServiceBusOperationException.from_error(operation, e) from e

    def _exists(self, getter: Callable, *args) -> bool:
        try:
            getter(*args)
            return True
        except EntityNotFoundException:
            return False

    # ========== QUEUES ==========

    def create_queue(self, queue_name: str, **properties) -> Dict[str, Any]:
        """Create a queue. Extra keyword arguments are passed to the SDK (e.g. max_delivery_count)."""
        queue = self._call("create_queue", EntityKind.QUEUE, queue_name,
                           self.administration_client.create_queue, queue_name, **properties)
        logger.info(f"Created queue {queue_name}")
        return convert_entity_properties(queue)

    def get_queue(self, queue_name: str) -> Dict[str, Any]:
        queue = self._call("get_queue", EntityKind.QUEUE, queue_name,
                           self.administration_client.get_queue, queue_name)
        return convert_entity_properties(queue)

    def get_queue_runtime_properties(self, queue_name: str) -> Dict[str, Any]:
        """Message counts and size of a queue."""
        runtime = self._call("get_queue_runtime_properties", EntityKind.QUEUE, queue_name,
                             self.administration_client.get_queue_runtime_properties, queue_name)
        return convert_entity_properties(runtime)

    def queue_exists(self, queue_name: str) -> bool:
        return self._exists(self.get_queue, queue_name)

    def list_queues(self) -> List[Dict[str, Any]]:
        queues = self._call("list_queues", EntityKind.QUEUE, "*",
                            lambda: list(self.administration_client.list_queues()))
        return [convert_entity_properties(queue) for queue in queues]

    def delete_queue(self, queue_name: str) -> None:
        self._call("delete_queue", EntityKind.QUEUE, queue_name,
                   self.administration_client.delete_queue, queue_name)
        logger.info(f"Deleted queue {queue_name}")

    # ========== TOPICS ==========

    def create_topic(self, topic_name: str, **properties) -> Dict[str, Any]:
        topic = self._call("create_topic", EntityKind.TOPIC, topic_name,
                           self.administration_client.create_topic, topic_name, **properties)
        logger.info(f"Created topic {topic_name}")
        return convert_entity_properties(topic)

    def get_topic(self, topic_name: str) -> Dict[str, Any]:
        topic = self._call("get_topic", EntityKind.TOPIC, topic_name,
                           self.administration_client.get_topic, topic_name)
        return convert_entity_properties(topic)

    def topic_exists(self, topic_name: str) -> bool:
        return self._exists(self.get_topic, topic_name)

    def list_topics(self) -> List[Dict[str, Any]]:
        topics = self._call("list_topics", EntityKind.TOPIC, "*",
                            lambda: list(self.administration_client.list_topics()))
        return [convert_entity_properties(topic) for topic in topics]

    def delete_topic(self, topic_name: str) -> None:
        self._call("delete_topic", EntityKind.TOPIC, topic_name,
                   self.administration_client.delete_topic, topic_name)
        logger.info(f"Deleted topic {topic_name}")

    # ========== SUBSCRIPTIONS ==========

    def create_subscription(self, topic_name: str, subscription_name: str, **properties) -> Dict[str, Any]:
        subscription = self._call("create_subscription", EntityKind.SUBSCRIPTION, f"{topic_name}/{subscription_name}",
                                  self.administration_client.create_subscription,
                                  topic_name, subscription_name, **properties)
        logger.info(f"Created subscription {subscription_name} on topic {topic_name}")
        return convert_entity_properties(subscription)

    def get_subscription(self, topic_name: str, subscription_name: str) -> Dict[str, Any]:
        subscription = self._call("get_subscription", EntityKind.SUBSCRIPTION, f"{topic_name}/{subscription_name}",
                                  self.administration_client.get_subscription, topic_name, subscription_name)
        return convert_entity_properties(subscription)

    def subscription_exists(self, topic_name: str, subscription_name: str) -> bool:
        return self._exists(self.get_subscription, topic_name, subscription_name)

    def list_subscriptions(self, topic_name: str) -> List[Dict[str, Any]]:
        subscriptions = self._call("list_subscriptions", EntityKind.SUBSCRIPTION, f"{topic_name}/*",
                                   lambda: list(self.administration_client.list_subscriptions(topic_name)))
        return [convert_entity_properties(subscription) for subscription in subscriptions]

    def delete_subscription(self, topic_name: str, subscription_name: str) -> None:
        self._call("delete_subscription", EntityKind.SUBSCRIPTION, f"{topic_name}/{subscription_name}",
                   self.administration_client.delete_subscription, topic_name, subscription_name)
        logger.info(f"Deleted subscription {subscription_name} on topic {topic_name}")

    # ========== RULES ==========

    @staticmethod
    def _build_filter(sql_filter: Optional[str], correlation_filter: Optional[Dict[str, Any]]):
        if sql_filter and correlation_filter:
            raise ValueError("Provide either sql_filter or correlation_filter, not both")
        if correlation_filter:
            return CorrelationRuleFilter(**correlation_filter)
        if sql_filter:
            return SqlRuleFilter(sql_filter)
        return None

    @staticmethod
    def _rule_to_dict(rule) -> Dict[str, Any]:
        rule_filter = rule.filter
        action = rule.action
        result = {
            "name": rule.name,
            "filter_type": type(rule_filter).__name__ if rule_filter is not None else None,
            "action": getattr(action, "sql_expression", None),
        }
        if isinstance(rule_filter, SqlRuleFilter):
            result["sql_expression"] = rule_filter.sql_expression
        elif isinstance(rule_filter, CorrelationRuleFilter):
            result["correlation_filter"] = convert_entity_properties(rule_filter)
        return result

    def create_rule(self, topic_name: str, subscription_name: str, rule_name: str,
                    sql_filter: Optional[str] = None, correlation_filter: Optional[Dict[str, Any]] = None,
                    sql_action: Optional[str] = None, replace_default_rule: bool = False) -> Dict[str, Any]:
        """
        Create a rule on a subscription.

        Args:
            topic_name: Topic owning the subscription
            subscription_name: Subscription owning the rule
            rule_name: Name of the new rule
            sql_filter: SQL filter expression, e.g. "subject = 'invoice.created'"
            correlation_filter: CorrelationRuleFilter keyword arguments
            sql_action: Optional SQL action expression
            replace_default_rule: Delete the catch-all $Default rule first
        """
        rule_filter = self._build_filter(sql_filter, correlation_filter)
        path = f"{topic_name}/{subscription_name}/{rule_name}"
        if replace_default_rule:
            try:
                self.delete_rule(topic_name, subscription_name, DEFAULT_RULE_NAME)
            except EntityNotFoundException:
                logger.debug(f"No {DEFAULT_RULE_NAME} rule on {topic_name}/{subscription_name}")

        kwargs = {}
        if rule_filter is not None:
            kwargs["filter"] = rule_filter
        if sql_action:
            kwargs["action"] = SqlRuleAction(sql_action)
        rule = self._call("create_rule", EntityKind.RULE, path,
                          self.administration_client.create_rule,
                          topic_name, subscription_name, rule_name, **kwargs)
        logger.info(f"Created rule {path}")
        return self._rule_to_dict(rule)

    def get_rule(self, topic_name: str, subscription_name: str, rule_name: str) -> Dict[str, Any]:
        rule = self._call("get_rule", EntityKind.RULE, f"{topic_name}/{subscription_name}/{rule_name}",
                          self.administration_client.get_rule, topic_name, subscription_name, rule_name)
        return self._rule_to_dict(rule)

    def rule_exists(self, topic_name: str, subscription_name: str, rule_name: str) -> bool:
        return self._exists(self.get_rule, topic_name, subscription_name, rule_name)

    def list_rules(self, topic_name: str, subscription_name: str) -> List[Dict[str, Any]]:
        rules = self._call("list_rules", EntityKind.RULE, f"{topic_name}/{subscription_name}/*",
                           lambda: list(self.administration_client.list_rules(topic_name, subscription_name)))
        return [self._rule_to_dict(rule) for rule in rules]

    def delete_rule(self, topic_name: str, subscription_name: str, rule_name: str) -> None:
        self._call("delete_rule", EntityKind.RULE, f"{topic_name}/{subscription_name}/{rule_name}",
                   self.administration_client.delete_rule, topic_name, subscription_name, rule_name)
        logger.info(f"Deleted rule {topic_name}/{subscription_name}/{rule_name}")
