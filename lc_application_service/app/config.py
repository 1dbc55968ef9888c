# Application Configuration using Pydantic BaseSettings
from pydantic_settings import BaseSettings
from typing import List, Optional

class AppSettings(BaseSettings):
    # MongoDB
    MONGO_DETAILS: str = "mongodb://mongo:27017"
    DB_NAME: str = "lc_applications_db"

    # Kafka (lifecycle events are only published when servers are configured)
    KAFKA_BOOTSTRAP_SERVERS: Optional[str] = None
    APPLICATION_EVENTS_TOPIC: str = "lc_application_events"

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    SERVICE_NAME_API: str = "lc-application-api"

    # HTTP
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Access tokens are issued by the identity service, verified here
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Lifecycle
    REFERENCE_MAX_ATTEMPTS: int = 5
    NOTIFICATION_MAX_ATTEMPTS: int = 2
    NOTIFICATIONS_ENABLED: bool = True

    # Queries
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100
    DASHBOARD_MONTHS: int = 6

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# Instantiate settings to be imported by other modules
settings = AppSettings()

import logging
logger = logging.getLogger(__name__)
logger.info("Application settings module initialized.")
