"""Shared schema base.

Learn: Python attributes stay snake_case; the wire format is camelCase
(accessToken, firstName, coverImageUrl). The alias generator handles the
mapping both ways. populate_by_name lets code build models with the
Python names, and FastAPI serializes responses by alias.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str
