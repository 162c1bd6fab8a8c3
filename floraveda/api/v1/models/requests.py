"""
API request models using Pydantic.
"""
from pydantic import BaseModel, Field


class ChatMessageRequest(BaseModel):
    """Request body for a chat message."""
    message: str = Field(
        description="Question for the plant doctor",
        examples=["Why are the leaves yellow?"]
    )
