"""
app/schemas/pairing.py

Pydantic models for the pairing API.
"""

from pydantic import BaseModel, Field, field_validator


class PairRequest(BaseModel):
    """Request body for POST /api/pair."""

    number: str = Field(..., min_length=1, description="Phone number with country code")

    @field_validator("number")
    @classmethod
    def strip_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("number cannot be blank")
        return v


class PairResponse(BaseModel):
    """Pairing code response. success is kept as a string for existing web clients."""

    success: str = Field(default="true")
    code: str = Field(..., description="Code to type into WhatsApp > Linked devices")
    number: str = Field(..., description="Normalized number being linked")


class DeleteSessionsResponse(BaseModel):
    status: str
