from pydantic import BaseModel, Field
from typing import Optional, Any


class ErrorResponse(BaseModel):
    """
    Body of every error response.

    Example:
        {"error": "Channel not found", "code": "CHANNEL_NOT_FOUND", "details": null}
    """
    error: str = Field(..., description="Human-readable message")
    code: str = Field(..., description="Stable machine-readable code")
    details: Optional[Any] = Field(default=None, description="Extra context, e.g. validation errors")
