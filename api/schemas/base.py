# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-17
# Description: base.py
# -----------------------------------------------------------------------------
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    The CRM front end speaks camelCase (searchType, ownerId, ...).
    Accepts both spellings on input and serialises with the camelCase alias.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
