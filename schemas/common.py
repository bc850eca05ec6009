# schemas/common.py
from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every wire model: snake_case in Python, camelCase in JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class MessageResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None


class DataResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: Any = None
