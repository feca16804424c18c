"""Bounds for entity identifiers accepted from clients."""

from typing import Annotated

from fastapi import Path
from pydantic import Field

# Primary keys are signed 64-bit integers in every supported backend.
MAX_ENTITY_ID = 2**63 - 1

EntityId = Annotated[int, Field(ge=1, le=MAX_ENTITY_ID)]
PathId = Annotated[int, Path(ge=1, le=MAX_ENTITY_ID)]


def is_entity_id(value: int) -> bool:
    return 1 <= value <= MAX_ENTITY_ID
