"""Pydantic models for the tools endpoint."""

from typing import Any

from pydantic import BaseModel, Field


class ToolDeclarationResponse(BaseModel):
    """A tool as advertised to the model."""

    name: str = Field(..., description="Tool name used for dispatch")
    description: str = Field(..., description="Hint shown to the model")
    parameters: dict[str, Any] = Field(..., description="JSON schema of the arguments")


class ToolListResponse(BaseModel):
    """Response model for listing tools, in advertisement order."""

    tools: list[ToolDeclarationResponse]
