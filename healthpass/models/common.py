"""
Shared model base and the response envelope.
"""

from typing import Any, Dict, Optional
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: snake_case in Python and storage, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Build a successful envelope with camelCase payload keys."""
    body: Dict[str, Any] = {"success": True, "data": jsonable_encoder(data, by_alias=True)}
    if message:
        body["message"] = message
    return body


def error_response(error: str, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Build a failed envelope."""
    body: Dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    body.update(extra)
    return body
