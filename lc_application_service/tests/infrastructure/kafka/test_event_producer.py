# Unit Tests for the Kafka Producer and Event Publisher
import json
import pytest
from unittest.mock import MagicMock, patch

from lc_application_service.app import config as app_config
from lc_application_service.app.service.events.models import ApplicationDeletedEvent, ApplicationDeletedEventPayload
from lc_application_service.app.service.exceptions import EventPublishError
from lc_application_service.app.service.interfaces.event_publisher import NullEventPublisher
from lc_application_service.infrastructure.kafka import producer as kafka_producer_module
from lc_application_service.infrastructure.kafka.producer import KafkaEventPublisher, KafkaProducerService


@pytest.fixture(autouse=True)
def manage_kafka_producer_settings():
    original_kafka_bootstrap_servers = app_config.settings.KAFKA_BOOTSTRAP_SERVERS
    kafka_producer_module._kafka_producer_instance = None
    yield
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = original_kafka_bootstrap_servers
    kafka_producer_module._kafka_producer_instance = None


def sample_event() -> ApplicationDeletedEvent:
    return ApplicationDeletedEvent(aggregate_id="app-1", payload=ApplicationDeletedEventPayload(reference="LC-2024-12345"))


@patch("lc_application_service.infrastructure.kafka.producer.Producer")
def test_get_kafka_producer_is_a_singleton(MockConfluentProducer):
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = "fake_server:9092"

    producer_service = kafka_producer_module.get_kafka_producer()

    assert isinstance(producer_service, KafkaProducerService)
    MockConfluentProducer.assert_called_once_with({"bootstrap.servers": "fake_server:9092"})
    assert kafka_producer_module.get_kafka_producer() is producer_service


def test_get_kafka_producer_requires_servers():
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = None
    with pytest.raises(ValueError, match="KAFKA_BOOTSTRAP_SERVERS not configured"):
        kafka_producer_module.get_kafka_producer()


def test_event_publisher_is_null_without_kafka():
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = None
    assert isinstance(kafka_producer_module.get_event_publisher(), NullEventPublisher)


@pytest.mark.asyncio
@patch("lc_application_service.infrastructure.kafka.producer.Producer")
async def test_publish_keys_event_by_application_id(MockConfluentProducer):
    confluent_producer = MagicMock()
    MockConfluentProducer.return_value = confluent_producer
    publisher = KafkaEventPublisher(KafkaProducerService("fake_server:9092"), "lc_application_events")

    await publisher.publish(sample_event())

    args, kwargs = confluent_producer.produce.call_args
    assert args[0] == "lc_application_events"
    assert kwargs["key"] == b"app-1"
    body = json.loads(kwargs["value"].decode("utf-8"))
    assert body["event_type"] == "ApplicationDeleted"
    assert body["payload"] == {"reference": "LC-2024-12345"}


@pytest.mark.asyncio
@patch("lc_application_service.infrastructure.kafka.producer.Producer")
async def test_publish_wraps_buffer_error(MockConfluentProducer):
    confluent_producer = MagicMock()
    confluent_producer.produce.side_effect = BufferError("queue full")
    MockConfluentProducer.return_value = confluent_producer
    publisher = KafkaEventPublisher(KafkaProducerService("fake_server:9092"), "lc_application_events")

    with pytest.raises(EventPublishError, match="ApplicationDeleted"):
        await publisher.publish(sample_event())


@pytest.mark.asyncio
async def test_startup_skips_when_unconfigured():
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = None
    await kafka_producer_module.startup_kafka_producer()
    assert kafka_producer_module._kafka_producer_instance is None
