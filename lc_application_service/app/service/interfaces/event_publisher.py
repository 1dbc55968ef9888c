import logging
from abc import ABC, abstractmethod

from lc_application_service.app.service.events.models import BaseEvent

logger = logging.getLogger(__name__)


class AbstractEventPublisher(ABC):
    @abstractmethod
    async def publish(self, event: BaseEvent) -> None:
        """
        Publishes a lifecycle event for downstream consumers.

        Raises EventPublishError if the event could not be handed to the transport.
        """
        pass


class NullEventPublisher(AbstractEventPublisher):
    """Used when no event transport is configured."""
    async def publish(self, event: BaseEvent) -> None:
        logger.debug(f"No event transport configured; dropping {event.event_type} for {event.aggregate_id}.")
