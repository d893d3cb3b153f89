"""
Shared pydantic base for models exchanged over the HTTP API.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Accepts snake_case or camelCase input, serializes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
