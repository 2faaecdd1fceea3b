"""
Shared Pydantic Schemas

Response envelopes used by more than one router.
"""

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Acknowledgement for operations that return no resource."""

    success: bool = Field(default=True, description="Always true on 2xx responses")
    message: str = Field(..., description="Human-readable outcome")


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response produced by the API."""

    success: bool = Field(default=False)
    error: str = Field(
        ...,
        description="Stable machine-readable error kind",
        examples=["invalid_credentials", "book_not_found"],
    )
    detail: str | list = Field(..., description="Human-readable message")
