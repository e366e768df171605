"""Tools router exposing the tool declarations advertised to the model."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from toolchat_server.dependencies import get_orchestrator
from toolchat_server.models.tools import ToolDeclarationResponse, ToolListResponse
from toolchat_server.services import Orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tools", tags=["tools"])


@router.get("", response_model=ToolListResponse, summary="List available tools")
async def list_tools(
    orchestrator: Annotated[Orchestrator, Depends(get_orchestrator)],
) -> ToolListResponse:
    """List every registered tool in the order it is advertised to the model."""
    declarations = orchestrator.registry.describe_all()
    logger.debug(f"Listed {len(declarations)} tools")
    return ToolListResponse(
        tools=[
            ToolDeclarationResponse(
                name=d.name, description=d.description, parameters=d.parameters
            )
            for d in declarations
        ]
    )
