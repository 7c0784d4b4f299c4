"""
Broker and endpoint request/response type definitions.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PublishResponse(BaseModel):
    """Body returned by the broker for an accepted publish request."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(..., alias="messageId")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: datetime
