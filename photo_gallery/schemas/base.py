"""
Shared base schema: snake_case attributes, camelCase on the wire.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models exchanged with the client and kept in the local cache."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
