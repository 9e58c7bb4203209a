"""
Admin agent management, mounted under the admin prefix.
"""

from fastapi import APIRouter, Depends, Request, status, Path
from homefinder.schemas.agent import AgentActionResult, AgentDeleteResult, AgentListResponse, AgentResponse
from homefinder.schemas.forms import AgentForm
from homefinder.services.agent import AgentService
from homefinder.services.error_handler import ErrorHandlerService
from homefinder.utils.dependencies import get_agent_service
from homefinder.utils.exceptions import APIException


router = APIRouter(prefix="/agents", tags=["Admin: Agents"])


@router.get("", response_model=AgentListResponse, summary="List agents")
async def list_agents(
    agent_service: AgentService = Depends(get_agent_service)
) -> AgentListResponse:
    result = await agent_service.list_agents()
    return AgentListResponse(
        agents=[AgentResponse.model_validate(agent.to_dict()) for agent in result.items],
        error=result.error,
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=AgentActionResult,
    summary="Create agent"
)
async def create_agent(
    request: Request,
    agent_service: AgentService = Depends(get_agent_service)
):
    """Create an agent from a form with name, email, phone and optional image."""
    form = await AgentForm.from_form(await request.form())
    try:
        agent = await agent_service.create_agent(form)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, form.submitted_values(), request)

    return AgentActionResult(id=str(agent.id), name=agent.name)


@router.get("/{agent_id}", response_model=AgentResponse, summary="Load an agent for editing")
async def edit_agent_form(
    agent_id: str = Path(..., description="Agent ID"),
    agent_service: AgentService = Depends(get_agent_service)
) -> AgentResponse:
    agent = await agent_service.get_agent(agent_id)
    return AgentResponse.model_validate(agent.to_dict())


@router.post("/{agent_id}", response_model=AgentActionResult, summary="Update agent")
async def update_agent(
    request: Request,
    agent_id: str = Path(..., description="Agent ID"),
    agent_service: AgentService = Depends(get_agent_service)
):
    form = await AgentForm.from_form(await request.form())
    try:
        agent = await agent_service.update_agent(agent_id, form)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, form.submitted_values(), request)

    return AgentActionResult(id=str(agent.id), name=agent.name)


@router.post("/{agent_id}/delete", response_model=AgentDeleteResult, summary="Delete agent")
async def delete_agent(
    request: Request,
    agent_id: str = Path(..., description="Agent ID"),
    agent_service: AgentService = Depends(get_agent_service)
):
    """
    Delete an agent. Their properties are kept and unassigned in the same transaction.
    """
    try:
        summary = await agent_service.delete_agent(agent_id)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, {"id": agent_id}, request)

    return AgentDeleteResult(**summary)
