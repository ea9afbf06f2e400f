"""Custom exceptions for the Service Bus connector."""

from typing import Optional


class ServiceBusConnectorException(Exception):
    """Base exception for all connector errors."""
    pass


class ConnectionConfigurationException(ServiceBusConnectorException):
    """Raised when a receiver or sender configuration is invalid or incomplete."""
    pass


class ServiceBusConnectionException(ServiceBusConnectorException):
    """Raised when the Service Bus connection cannot be opened."""
    pass


class ServiceBusOperationException(ServiceBusConnectorException):
    """
    Uniform wrapper for a failure raised by the Service Bus SDK.

    Carries the operation that failed and the class name and message of
    the original exception, which stays available as ``__cause__``.
    """

    def __init__(self, operation: str, error_type: str, message: str):
        self.operation = operation
        self.error_type = error_type
        self.message = message
        super().__init__(f"{operation} failed with {error_type}: {message}")

    @classmethod
    def from_error(cls, operation: str, error: BaseException) -> "ServiceBusOperationException":
        return cls(operation, type(error).__name__, str(error))


class LockTokenNotFoundException(ServiceBusConnectorException):
    """Raised when a lock token was not issued by this receiver."""

    def __init__(self, lock_token: Optional[str]):
        self.lock_token = lock_token
        super().__init__(f"No received message found for lock token '{lock_token}'")


class ReceiverClosedException(ServiceBusConnectorException):
    """Raised when an operation is attempted on a closed receiver."""
    pass


class SenderClosedException(ServiceBusConnectorException):
    """Raised when an operation is attempted on a closed sender."""
    pass


class UnsupportedBodyTypeException(ServiceBusConnectorException):
    """Raised when a received message carries an AMQP body type the connector cannot translate."""
    pass


class AdministrationException(ServiceBusConnectorException):
    """Base exception for entity management operations."""
    pass


class EntityNotFoundException(AdministrationException):
    """Raised when a queue, topic, subscription or rule does not exist."""
    pass


class EntityAlreadyExistsException(AdministrationException):
    """Raised when creating a queue, topic, subscription or rule that already exists."""
    pass
