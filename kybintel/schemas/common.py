"""Shared schema building blocks."""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Response/request model serialized with camelCase keys.

    The presentation layer consumes camelCase JSON; Python code keeps
    snake_case attributes. Both spellings are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RiskBand(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EntityKind(StrEnum):
    COMPANY = "company"
    PERSON = "person"


# "director" is accepted as a synonym for person
ENTITY_KINDS: dict[str, EntityKind] = {
    "company": EntityKind.COMPANY,
    "person": EntityKind.PERSON,
    "director": EntityKind.PERSON,
}


def parse_entity_kind(value: object) -> Optional[EntityKind]:
    """Case-insensitive entity type lookup. Unknown values give None."""
    if isinstance(value, EntityKind):
        return value
    if not isinstance(value, str):
        return None
    return ENTITY_KINDS.get(value.strip().lower())
