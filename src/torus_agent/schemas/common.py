"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Error body carrying a single human-readable message."""

    message: str = Field(..., description="Description of what went wrong.")
