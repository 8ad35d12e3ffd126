from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys for the dashboard client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
