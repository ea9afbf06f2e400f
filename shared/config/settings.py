"""
Connector settings and configuration.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import find_dotenv
from pydantic import ConfigDict

# Find .env file automatically
ENV_FILE = find_dotenv(usecwd=True) or ".env"

class Settings(BaseSettings):
    """Connector settings loaded from environment variables."""

    environment: str = "development"
    debug: bool = False

    #Logging Configuration
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/asb-connector.log"
    log_to_console: bool = True

    # Azure Service Bus
    service_bus_connection_string: Optional[str] = None
    service_bus_host_name: Optional[str] = None  # <namespace>.servicebus.windows.net
    service_bus_queue_name: str = ""
    service_bus_topic_name: str = ""
    service_bus_subscription_name: str = ""

    # Receiver defaults
    receive_mode: str = "PEEK_LOCK"  # Options: PEEK_LOCK, RECEIVE_AND_DELETE
    max_auto_lock_renew_duration: int = 0  # seconds, 0 disables auto renewal
    server_wait_time: Optional[int] = 5
    prefetch_count: int = 0

    # Retry defaults, applied by the SDK
    retry_max_retries: int = 3
    retry_delay: float = 0.8
    retry_max_delay: float = 60.0
    retry_try_timeout: float = 60.0
    retry_mode: str = "EXPONENTIAL"  # Options: FIXED, EXPONENTIAL

    model_config = ConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached connector settings.

    Returns:
        Settings instance
    """
    return Settings()

settings = get_settings()
