# Pydantic models for Application Lifecycle Events
from pydantic import BaseModel, Field
from typing import List, Optional
import datetime
import uuid

class EventMetaData(BaseModel):
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None # command_id that produced the event
    actor_id: Optional[str] = None

class BaseEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str # To be overridden by specific events
    aggregate_id: str # Application id
    timestamp: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    version: int = 1 # Application version after the change
    payload: BaseModel
    metadata: EventMetaData = Field(default_factory=EventMetaData)

# --- Specific Event Payloads ---
class ApplicationCreatedEventPayload(BaseModel):
    reference: str
    type: str
    amount: float
    currency: str
    applicant: str
    created_by: str

class ApplicationStatusChangedEventPayload(BaseModel):
    reference: str
    old_status: str
    new_status: str
    comments: Optional[str] = None

class ApplicationStepUpdatedEventPayload(BaseModel):
    reference: str
    step: str
    form_section: Optional[str] = None

class ApplicationSubmittedEventPayload(BaseModel):
    reference: str
    previous_status: str
    officers_notified: int
    officers_missed: List[str] = Field(default_factory=list)

class ApplicationDeletedEventPayload(BaseModel):
    reference: str

# --- Specific Events ---
class ApplicationCreatedEvent(BaseEvent):
    event_type: str = "ApplicationCreated"
    payload: ApplicationCreatedEventPayload

class ApplicationStatusChangedEvent(BaseEvent):
    event_type: str = "ApplicationStatusChanged"
    payload: ApplicationStatusChangedEventPayload

class ApplicationStepUpdatedEvent(BaseEvent):
    event_type: str = "ApplicationStepUpdated"
    payload: ApplicationStepUpdatedEventPayload

class ApplicationSubmittedEvent(BaseEvent):
    event_type: str = "ApplicationSubmitted"
    payload: ApplicationSubmittedEventPayload

class ApplicationDeletedEvent(BaseEvent):
    event_type: str = "ApplicationDeleted"
    payload: ApplicationDeletedEventPayload
