import logging
import uuid
from unittest.mock import MagicMock

import pytest

from asb_connector.infrastructure.messaging.lock_token_registry import LockTokenRegistry
from shared.utils.exceptions import LockTokenNotFoundException
from shared.utils.logging_config import ConnectionStringFilter


class TestLockTokenRegistry:

    def test_resolves_registered_message_by_string_token(self):
        registry = LockTokenRegistry()
        token = uuid.uuid4()
        message = MagicMock()

        registry.register(token, message)

        assert registry.resolve(str(token)) is message
        assert str(token) in registry
        assert len(registry) == 1

    def test_messages_without_lock_token_are_skipped(self):
        registry = LockTokenRegistry()

        registry.register(None, MagicMock())

        assert len(registry) == 0

    def test_unknown_token(self):
        registry = LockTokenRegistry()

        with pytest.raises(LockTokenNotFoundException) as exc_info:
            registry.resolve("unknown")
        assert exc_info.value.lock_token == "unknown"

    def test_clear(self):
        registry = LockTokenRegistry()
        registry.register("token", MagicMock())

        registry.clear()

        with pytest.raises(LockTokenNotFoundException):
            registry.resolve("token")


class TestConnectionStringFilter:

    def test_shared_access_key_is_redacted(self):
        record = logging.LogRecord(
            "test", logging.INFO, __file__, 1,
            "Connecting with Endpoint=sb://ns.servicebus.windows.net/;SharedAccessKeyName=root;SharedAccessKey=abc123=",
            None, None
        )

        ConnectionStringFilter().filter(record)

        assert "abc123" not in record.msg
        assert "SharedAccessKey=***REDACTED***" in record.msg
        assert "SharedAccessKeyName=root" in record.msg
