"""
Builds SDK clients from connection configurations.
"""
from typing import Optional

from azure.servicebus import ServiceBusClient
from azure.servicebus.management import ServiceBusAdministrationClient

from asb_connector.infrastructure.azure_credential_manager import get_credential_manager
from shared.models.connection import RetryOptions
from shared.utils.exceptions import ConnectionConfigurationException
from shared.utils.logging_config import get_logger

logger = get_logger(__name__)


def _missing_credentials() -> ConnectionConfigurationException:
    return ConnectionConfigurationException(
        "Either a connection string or a fully qualified namespace must be provided"
    )


def create_servicebus_client(
    connection_string: Optional[str] = None,
    fully_qualified_namespace: Optional[str] = None,
    retry_options: Optional[RetryOptions] = None,
) -> ServiceBusClient:
    """
    Create a ServiceBusClient from a connection string, or from a namespace
    authenticated with the shared DefaultAzureCredential.

    Raises:
        ConnectionConfigurationException: No credentials were given, or the SDK
            rejected them as malformed
    """
    if not connection_string and not fully_qualified_namespace:
        raise _missing_credentials()

    retry_kwargs = (retry_options or RetryOptions()).to_client_kwargs()
    try:
        if connection_string:
            logger.debug("Creating ServiceBusClient from connection string")
            return ServiceBusClient.from_connection_string(connection_string, **retry_kwargs)
        logger.debug(f"Creating ServiceBusClient for namespace {fully_qualified_namespace}")
        return ServiceBusClient(
            fully_qualified_namespace=fully_qualified_namespace,
            credential=get_credential_manager().get_credential(),
            **retry_kwargs
        )
    except ValueError as e:
        logger.error(f"Invalid Service Bus connection settings: {e}")
        raise ConnectionConfigurationException(f"Invalid Service Bus connection settings: {e}") from e


def create_administration_client(
    connection_string: Optional[str] = None,
    fully_qualified_namespace: Optional[str] = None,
) -> ServiceBusAdministrationClient:
    """Create a ServiceBusAdministrationClient the same way as the messaging client."""
    if not connection_string and not fully_qualified_namespace:
        raise _missing_credentials()

    try:
        if connection_string:
            return ServiceBusAdministrationClient.from_connection_string(connection_string)
        return ServiceBusAdministrationClient(
            fully_qualified_namespace=fully_qualified_namespace,
            credential=get_credential_manager().get_credential()
        )
    except ValueError as e:
        logger.error(f"Invalid Service Bus administration settings: {e}")
        raise ConnectionConfigurationException(f"Invalid Service Bus administration settings: {e}") from e
