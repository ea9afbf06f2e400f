"""
Connection configuration models for receivers and senders.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from azure.servicebus import AutoLockRenewer, ServiceBusReceiveMode

from shared.utils.constants import ReceiveModes, RetryModes
from shared.utils.exceptions import ConnectionConfigurationException


class ReceiveMode(str, Enum):
    """Receive mode of a message receiver."""
    PEEK_LOCK = ReceiveModes.PEEK_LOCK
    RECEIVE_AND_DELETE = ReceiveModes.RECEIVE_AND_DELETE

    def receiver_options(self, max_auto_lock_renew_duration: int = 0) -> Dict[str, Any]:
        """
        Build the SDK receiver keyword arguments for this mode.

        Peek-lock receivers get an AutoLockRenewer when a positive renewal
        duration is given. Receive-and-delete receivers never renew locks,
        so the duration is ignored.
        """
        if self is ReceiveMode.RECEIVE_AND_DELETE:
            return {"receive_mode": ServiceBusReceiveMode.RECEIVE_AND_DELETE}

        options: Dict[str, Any] = {"receive_mode": ServiceBusReceiveMode.PEEK_LOCK}
        if max_auto_lock_renew_duration > 0:
            options["auto_lock_renewer"] = AutoLockRenewer(
                max_lock_renewal_duration=max_auto_lock_renew_duration
            )
        return options


class RetryMode(str, Enum):
    """Delay behaviour between SDK retry attempts."""
    FIXED = RetryModes.FIXED
    EXPONENTIAL = RetryModes.EXPONENTIAL


@dataclass(frozen=True)
class RetryOptions:
    """
    Retry policy handed to the SDK client. The connector itself never retries.

    ``try_timeout`` is passed to the SDK as ``socket_timeout``, which bounds
    each socket read and write rather than a whole operation attempt. It is
    the closest setting the SDK exposes to a per-try timeout. Receivers also
    use it as their wait time when no ``server_wait_time`` is configured.
    """
    max_retries: int = 3
    delay: float = 0.8
    max_delay: float = 60.0
    try_timeout: float = 60.0
    retry_mode: RetryMode = RetryMode.EXPONENTIAL

    def __post_init__(self):
        if isinstance(self.retry_mode, str) and not isinstance(self.retry_mode, RetryMode):
            object.__setattr__(self, "retry_mode", _parse_enum(RetryMode, self.retry_mode, "retry mode"))
        if self.max_retries < 0:
            raise ConnectionConfigurationException("max_retries must not be negative")

    def to_client_kwargs(self) -> Dict[str, Any]:
        """Map to ServiceBusClient keyword arguments."""
        return {
            "retry_total": self.max_retries,
            "retry_backoff_factor": self.delay,
            "retry_backoff_max": self.max_delay,
            "retry_mode": self.retry_mode.value.lower(),
            "socket_timeout": self.try_timeout,
        }

    @classmethod
    def from_settings(cls, settings) -> "RetryOptions":
        return cls(
            max_retries=settings.retry_max_retries,
            delay=settings.retry_delay,
            max_delay=settings.retry_max_delay,
            try_timeout=settings.retry_try_timeout,
            retry_mode=settings.retry_mode,
        )


def _parse_enum(enum_cls, value: str, label: str):
    try:
        return enum_cls(value.upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConnectionConfigurationException(f"Invalid {label} '{value}'. Expected one of: {allowed}")


def _require_credentials(connection_string: Optional[str], fully_qualified_namespace: Optional[str]) -> None:
    if not connection_string and not fully_qualified_namespace:
        raise ConnectionConfigurationException(
            "Either a connection string or a fully qualified namespace must be provided"
        )


@dataclass(frozen=True)
class ReceiverConfiguration:
    """
    Immutable configuration of a message receiver.

    The receiver binds to ``queue_name`` when it is set, otherwise to
    ``topic_name`` + ``subscription_name``.
    """
    connection_string: Optional[str] = None
    fully_qualified_namespace: Optional[str] = None
    queue_name: str = ""
    topic_name: str = ""
    subscription_name: str = ""
    receive_mode: ReceiveMode = ReceiveMode.PEEK_LOCK
    max_auto_lock_renew_duration: int = 0
    prefetch_count: int = 0
    server_wait_time: Optional[float] = None
    retry_options: RetryOptions = field(default_factory=RetryOptions)

    def __post_init__(self):
        if isinstance(self.receive_mode, str) and not isinstance(self.receive_mode, ReceiveMode):
            object.__setattr__(self, "receive_mode", _parse_enum(ReceiveMode, self.receive_mode, "receive mode"))
        _require_credentials(self.connection_string, self.fully_qualified_namespace)
        if not self.queue_name and not (self.topic_name and self.subscription_name):
            raise ConnectionConfigurationException(
                "Either a queue name or both a topic name and a subscription name must be provided"
            )
        if self.max_auto_lock_renew_duration < 0:
            raise ConnectionConfigurationException("max_auto_lock_renew_duration must not be negative")
        if self.server_wait_time is not None and self.server_wait_time <= 0:
            raise ConnectionConfigurationException("server_wait_time must be positive")

    @property
    def default_wait_time(self) -> float:
        """Seconds a receive waits when the caller gives no timeout. Falls back to the retry try timeout."""
        if self.server_wait_time is not None:
            return self.server_wait_time
        return self.retry_options.try_timeout

    @property
    def is_queue(self) -> bool:
        return bool(self.queue_name)

    @property
    def entity_path(self) -> str:
        if self.is_queue:
            return self.queue_name
        return f"{self.topic_name}/subscriptions/{self.subscription_name}"

    @classmethod
    def from_settings(cls, settings, **overrides) -> "ReceiverConfiguration":
        """Build a receiver configuration from connector settings."""
        values = dict(
            connection_string=settings.service_bus_connection_string,
            fully_qualified_namespace=settings.service_bus_host_name,
            queue_name=settings.service_bus_queue_name,
            topic_name=settings.service_bus_topic_name,
            subscription_name=settings.service_bus_subscription_name,
            receive_mode=settings.receive_mode,
            max_auto_lock_renew_duration=settings.max_auto_lock_renew_duration,
            prefetch_count=settings.prefetch_count,
            server_wait_time=settings.server_wait_time,
            retry_options=RetryOptions.from_settings(settings),
        )
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class SenderConfiguration:
    """Immutable configuration of a message sender bound to a queue or a topic."""
    connection_string: Optional[str] = None
    fully_qualified_namespace: Optional[str] = None
    queue_name: str = ""
    topic_name: str = ""
    retry_options: RetryOptions = field(default_factory=RetryOptions)

    def __post_init__(self):
        _require_credentials(self.connection_string, self.fully_qualified_namespace)
        if not self.queue_name and not self.topic_name:
            raise ConnectionConfigurationException("Either a queue name or a topic name must be provided")

    @property
    def is_queue(self) -> bool:
        return bool(self.queue_name)

    @property
    def entity_path(self) -> str:
        return self.queue_name or self.topic_name

    @classmethod
    def from_settings(cls, settings, **overrides) -> "SenderConfiguration":
        """Build a sender configuration from connector settings."""
        values = dict(
            connection_string=settings.service_bus_connection_string,
            fully_qualified_namespace=settings.service_bus_host_name,
            queue_name=settings.service_bus_queue_name,
            topic_name=settings.service_bus_topic_name,
            retry_options=RetryOptions.from_settings(settings),
        )
        values.update(overrides)
        return cls(**values)
