from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ResourceExistsError, ResourceNotFoundError
from azure.servicebus.management import CorrelationRuleFilter, SqlRuleFilter

from asb_connector.infrastructure.administration.servicebus_administrator import ServiceBusAdministrator
from shared.utils.exceptions import (
    ConnectionConfigurationException,
    EntityAlreadyExistsException,
    EntityNotFoundException,
    ServiceBusOperationException,
)


def queue_properties(name: str):
    return SimpleNamespace(
        name=name,
        max_delivery_count=10,
        lock_duration=timedelta(minutes=1),
        dead_lettering_on_message_expiration=True,
        _internal_qd=object(),
    )


class TestServiceBusAdministrator:

    @pytest.fixture
    def administration_client(self):
        return MagicMock(name="ServiceBusAdministrationClient")

    @pytest.fixture
    def administrator(self, administration_client):
        return ServiceBusAdministrator(administration_client=administration_client)

    def test_create_queue_returns_plain_properties(self, administrator, administration_client):
        administration_client.create_queue.return_value = queue_properties("orders")

        queue = administrator.create_queue("orders", max_delivery_count=10)

        administration_client.create_queue.assert_called_once_with("orders", max_delivery_count=10)
        assert queue == {
            "name": "orders",
            "max_delivery_count": 10,
            "lock_duration": 60.0,
            "dead_lettering_on_message_expiration": True,
        }

    def test_create_existing_queue_raises(self, administrator, administration_client):
        administration_client.create_queue.side_effect = ResourceExistsError("Conflict")

        with pytest.raises(EntityAlreadyExistsException):
            administrator.create_queue("orders")

    def test_missing_queue(self, administrator, administration_client):
        administration_client.get_queue.side_effect = ResourceNotFoundError("Not found")

        with pytest.raises(EntityNotFoundException):
            administrator.get_queue("missing")
        assert administrator.queue_exists("missing") is False

    def test_existing_queue(self, administrator, administration_client):
        administration_client.get_queue.return_value = queue_properties("orders")

        assert administrator.queue_exists("orders") is True

    def test_other_failures_are_wrapped(self, administrator, administration_client):
        administration_client.delete_topic.side_effect = HttpResponseError("Unauthorized")

        with pytest.raises(ServiceBusOperationException) as exc_info:
            administrator.delete_topic("invoices")

        assert exc_info.value.operation == "delete_topic"
        assert exc_info.value.error_type == "HttpResponseError"

    def test_list_subscriptions(self, administrator, administration_client):
        administration_client.list_subscriptions.return_value = iter([
            SimpleNamespace(name="audit", max_delivery_count=5),
            SimpleNamespace(name="billing", max_delivery_count=10),
        ])

        subscriptions = administrator.list_subscriptions("invoices")

        administration_client.list_subscriptions.assert_called_once_with("invoices")
        assert [subscription["name"] for subscription in subscriptions] == ["audit", "billing"]

    def test_create_sql_rule_replacing_default(self, administrator, administration_client):
        administration_client.create_rule.return_value = SimpleNamespace(
            name="orders",
            filter=SqlRuleFilter("subject = 'order.created'"),
            action=None,
        )

        rule = administrator.create_rule(
            "invoices", "audit", "orders",
            sql_filter="subject = 'order.created'",
            replace_default_rule=True
        )

        administration_client.delete_rule.assert_called_once_with("invoices", "audit", "$Default")
        kwargs = administration_client.create_rule.call_args.kwargs
        assert isinstance(kwargs["filter"], SqlRuleFilter)
        assert kwargs["filter"].sql_expression == "subject = 'order.created'"
        assert rule == {
            "name": "orders",
            "filter_type": "SqlRuleFilter",
            "action": None,
            "sql_expression": "subject = 'order.created'",
        }

    def test_create_rule_without_default_rule(self, administrator, administration_client):
        administration_client.delete_rule.side_effect = ResourceNotFoundError("Not found")
        administration_client.create_rule.return_value = SimpleNamespace(
            name="by-correlation",
            filter=CorrelationRuleFilter(correlation_id="corr-1"),
            action=None,
        )

        rule = administrator.create_rule(
            "invoices", "audit", "by-correlation",
            correlation_filter={"correlation_id": "corr-1"},
            replace_default_rule=True
        )

        assert rule["filter_type"] == "CorrelationRuleFilter"
        assert rule["correlation_filter"]["correlation_id"] == "corr-1"

    def test_rule_filters_are_exclusive(self, administrator):
        with pytest.raises(ValueError):
            administrator.create_rule("invoices", "audit", "bad", sql_filter="1=1",
                                      correlation_filter={"subject": "x"})

    def test_injected_client_is_not_closed(self, administrator, administration_client):
        administrator.close()

        administration_client.close.assert_not_called()

    def test_malformed_connection_string_raises_configuration_exception(self):
        with pytest.raises(ConnectionConfigurationException):
            ServiceBusAdministrator(connection_string="not-a-connection-string")
