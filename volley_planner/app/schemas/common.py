"""
Shared pydantic configuration.

The wire format uses camelCase keys (``startTime``, ``invitedPlayers``)
while Python code uses snake_case attributes.  ``CamelModel`` wires the
alias generator once so that every schema accepts both spellings on
input and emits camelCase when dumped with ``by_alias=True``.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
