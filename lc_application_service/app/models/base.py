import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return str(uuid.uuid4().hex)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class CamelModel(BaseModel):
    # Stored snake_case, served camelCase; enums are kept as plain strings so BSON can encode them.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class DocumentModel(CamelModel):
    id: str = Field(default_factory=new_id)
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)
