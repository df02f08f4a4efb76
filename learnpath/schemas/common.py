"""
Common schema types used across the API.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    database: str = "connected"
    search_configured: bool = False
    ai_gateway_configured: bool = False
