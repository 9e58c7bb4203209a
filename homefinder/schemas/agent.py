"""
Pydantic schemas for agent responses.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class AgentResponse(BaseModel):
    """Public agent profile."""

    id: str = Field(..., description="Agent unique identifier")
    name: str
    email: str
    phone: Optional[str] = None
    image_url: Optional[str] = None


class AgentActionResult(BaseModel):
    """Successful admin action on an agent."""

    success: bool = True
    id: str
    name: str


class AgentDeleteResult(AgentActionResult):
    unassigned_count: int = Field(..., description="Properties that lost their agent")


class AgentListResponse(BaseModel):
    """Agent directory, empty with an advisory message when loading failed."""

    agents: List[AgentResponse]
    error: Optional[str] = Field(None, description="Advisory message when agents could not be loaded")
