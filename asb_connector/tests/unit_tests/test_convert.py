import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from azure.servicebus.amqp import AmqpMessageBodyType

from asb_connector.tests.unit_tests.sdk_doubles import make_received_message
from shared.utils.convert import (
    convert_amqp_value,
    convert_application_properties,
    convert_message_body,
)
from shared.utils.exceptions import UnsupportedBodyTypeException


class TestMessageBodyTranslation:

    def test_data_body_is_passed_through_as_bytes(self):
        message = make_received_message(body=b"\x00\x01binary")

        assert convert_message_body(message) == b"\x00\x01binary"

    def test_data_sections_are_joined(self):
        message = make_received_message()
        message.body = [b"first-", b"second"]

        assert convert_message_body(message) == b"first-second"

    @pytest.mark.parametrize("value", [
        42,
        2 ** 40,
        3.25,
        "plain text",
        True,
        Decimal("19.99"),
        datetime(2024, 1, 2, tzinfo=timezone.utc),
        uuid.UUID("12345678-1234-5678-1234-567812345678"),
    ])
    def test_supported_value_body_is_passed_through(self, value):
        message = make_received_message(body=value, body_type=AmqpMessageBodyType.VALUE)

        assert convert_message_body(message) == value

    @pytest.mark.parametrize("value", [
        {"nested": "map"},
        ["a", "list"],
        b"binary value",
        object(),
    ])
    def test_unsupported_value_body_is_dropped(self, value):
        message = make_received_message(body=value, body_type=AmqpMessageBodyType.VALUE)

        assert convert_message_body(message) is None

    def test_sequence_body_is_rejected(self):
        message = make_received_message(body=[[1, 2]], body_type=AmqpMessageBodyType.SEQUENCE)

        with pytest.raises(UnsupportedBodyTypeException):
            convert_message_body(message)

    def test_none_value_stays_none(self):
        assert convert_amqp_value("msg-1", None) is None


class TestApplicationPropertyTranslation:

    def test_supported_scalars_keep_their_type(self):
        properties = convert_application_properties({
            "name": "order",
            "count": 3,
            "big": 2 ** 40,
            "ratio": 0.5,
            "urgent": False,
        })

        assert properties == {"name": "order", "count": 3, "big": 2 ** 40, "ratio": 0.5, "urgent": False}
        assert type(properties["count"]) is int
        assert type(properties["urgent"]) is bool
        assert type(properties["ratio"]) is float

    def test_unsupported_values_become_strings(self):
        identifier = uuid.UUID("12345678-1234-5678-1234-567812345678")
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        properties = convert_application_properties({
            "id": identifier,
            "when": when,
            "amount": Decimal("10.50"),
            "tags": ["a", "b"],
        })

        assert properties == {
            "id": str(identifier),
            "when": str(when),
            "amount": "10.50",
            "tags": "['a', 'b']",
        }

    def test_bytes_keys_and_values_are_decoded(self):
        properties = convert_application_properties({b"tenant": b"contoso"})

        assert properties == {"tenant": "contoso"}

    def test_missing_properties_give_empty_dict(self):
        assert convert_application_properties(None) == {}
