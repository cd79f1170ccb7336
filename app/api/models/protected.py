# app/api/models/protected.py
from pydantic import BaseModel, Field


class ProtectedResourceResponse(BaseModel):
    """Response model for a successfully paid request."""
    message: str = Field(
        default="Payment successful! Here is your resource.",
        description="Success message"
    )
    content: str = Field(..., description="The protected content")
