# Kafka Producer Utility
import asyncio
import logging
from confluent_kafka import Producer
from pydantic import BaseModel
from typing import Optional, Callable, Any

from lc_application_service.app.config import settings
from lc_application_service.app.service.events.models import BaseEvent
from lc_application_service.app.service.exceptions import EventPublishError
from lc_application_service.app.service.interfaces.event_publisher import AbstractEventPublisher, NullEventPublisher

logger = logging.getLogger(__name__)

class KafkaProducerService:
    def __init__(self, bootstrap_servers: str):
        self.producer_config = {
            'bootstrap.servers': bootstrap_servers,
        }
        self.producer = Producer(self.producer_config)
        self._cancelled = False
        self._poll_loop_task: Optional[asyncio.Task] = None
        logger.info(f"KafkaProducer initialized with servers: {bootstrap_servers}")

    def _delivery_report(self, err, msg):
        """ Called once for each message produced to indicate delivery result. """
        if err is not None:
            logger.error(f'Message delivery failed: Topic {msg.topic()} Key {msg.key()}: {err}')
        else:
            logger.info(f'Message delivered: Topic {msg.topic()} Key {msg.key()} Partition [{msg.partition()}] @ Offset {msg.offset()}')

    async def _poll_loop(self):
        """ Polls the producer for delivery reports. """
        while not self._cancelled:
            self.producer.poll(0.1)
            await asyncio.sleep(0.1)
        logger.info("KafkaProducer poll loop stopped.")

    def produce_message(
        self,
        topic: str,
        message: BaseModel,
        key: Optional[str] = None,
        callback: Optional[Callable[[Any, Any], None]] = None # err, msg
    ):
        """ Produces a Pydantic model message to a Kafka topic. """
        if self._cancelled:
            logger.warning(f"Producer is cancelled, not producing message to {topic}.")
            return

        try:
            value_json = message.model_dump_json()
            self.producer.produce(
                topic,
                value=value_json.encode('utf-8'),
                key=key.encode('utf-8') if key else None,
                callback=callback if callback else self._delivery_report
            )
            logger.debug(f"Message enqueued to topic {topic} (key: {key}): {value_json}")
        except BufferError as e:
            logger.error(f"Kafka producer queue full. Message to {topic} not produced. Error: {e}")
            raise
        except Exception as e:
            logger.error(f"Error producing message to Kafka topic {topic}: {e}", exc_info=True)
            raise

    async def start_polling(self):
        if self._poll_loop_task is None or self._poll_loop_task.done():
            self._cancelled = False
            self._poll_loop_task = asyncio.create_task(self._poll_loop())
            logger.info("KafkaProducer polling started.")

    async def stop_polling(self):
        if self._poll_loop_task and not self._cancelled:
            self._cancelled = True
            try:
                await asyncio.wait_for(self._poll_loop_task, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("KafkaProducer poll loop did not stop in time.")
            self._poll_loop_task = None

    def flush(self, timeout: float = 10.0) -> int: # Return remaining messages
        """Wait for all messages in the Producer queue to be delivered. """
        remaining = self.producer.flush(timeout)
        if remaining > 0:
            logger.warning(f"{remaining} messages still in Kafka producer queue after flush timeout.")
        else:
            logger.info("All Kafka messages flushed successfully.")
        return remaining


class KafkaEventPublisher(AbstractEventPublisher):
    def __init__(self, producer: KafkaProducerService, topic: str):
        self.producer = producer
        self.topic = topic

    async def publish(self, event: BaseEvent) -> None:
        try:
            self.producer.produce_message(topic=self.topic, message=event, key=event.aggregate_id)
        except Exception as e:
            raise EventPublishError(f"Failed to publish {event.event_type} for application {event.aggregate_id}: {e}") from e
        logger.info(f"{event.event_type} for application {event.aggregate_id} enqueued to topic {self.topic}.")


_kafka_producer_instance: Optional[KafkaProducerService] = None

def get_kafka_producer() -> KafkaProducerService:
    global _kafka_producer_instance
    if _kafka_producer_instance is None:
        if not settings.KAFKA_BOOTSTRAP_SERVERS:
            logger.error("KAFKA_BOOTSTRAP_SERVERS not configured in settings. KafkaProducer cannot be initialized.")
            raise ValueError("KAFKA_BOOTSTRAP_SERVERS not configured.")
        _kafka_producer_instance = KafkaProducerService(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS
        )
    return _kafka_producer_instance

def get_event_publisher() -> AbstractEventPublisher:
    if not settings.KAFKA_BOOTSTRAP_SERVERS:
        return NullEventPublisher()
    return KafkaEventPublisher(get_kafka_producer(), settings.APPLICATION_EVENTS_TOPIC)

async def startup_kafka_producer():
    if not settings.KAFKA_BOOTSTRAP_SERVERS:
        logger.info("KAFKA_BOOTSTRAP_SERVERS not set; lifecycle events will not be published.")
        return
    producer = get_kafka_producer()
    await producer.start_polling()

async def shutdown_kafka_producer():
    if _kafka_producer_instance:
        logger.info("Flushing Kafka producer before shutdown...")
        _kafka_producer_instance.flush()
        await _kafka_producer_instance.stop_polling()
        logger.info("Kafka producer shutdown complete.")
    else:
        logger.info("Kafka producer was not initialized, skipping shutdown steps.")
