"""
Landing page, agent directory and contact form endpoints.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import List
import asyncio
import logging

from homefinder.config import Settings, get_settings
from homefinder.database import get_session_factory
from homefinder.repositories.agent import AgentRepository
from homefinder.repositories.property import PropertyRepository
from homefinder.schemas.agent import AgentListResponse, AgentResponse
from homefinder.schemas.forms import ContactForm
from homefinder.schemas.property import HomeResponse, PropertySummary
from homefinder.services.agent import AgentService
from homefinder.services.error_handler import ErrorHandlerService
from homefinder.services.notification import NotificationService
from homefinder.utils.dependencies import get_agent_service, get_notification_service
from homefinder.utils.exceptions import APIException

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Home"])


@router.get(
    "/home",
    response_model=HomeResponse,
    summary="Landing page data",
    description="Featured properties and agents, loaded concurrently."
)
async def home(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_settings)
):
    """
    The two reads are independent, so each gets its own session and they run
    concurrently. A data-source failure degrades to empty lists.
    """
    async def load_featured() -> List[PropertySummary]:
        async with session_factory() as session:
            properties = await PropertyRepository(session).get_featured_properties(settings.featured_limit)
            return [PropertySummary.model_validate(prop.to_summary()) for prop in properties]

    async def load_agents() -> List[AgentResponse]:
        async with session_factory() as session:
            agents = await AgentRepository(session).list_agents()
            return [AgentResponse.model_validate(agent.to_dict()) for agent in agents]

    # both branches always finish before any failure is looked at
    featured, agents = await asyncio.gather(load_featured(), load_agents(), return_exceptions=True)

    failures = [outcome for outcome in (featured, agents) if isinstance(outcome, BaseException)]
    for failure in failures:
        if not isinstance(failure, SQLAlchemyError):
            raise failure
    if failures:
        logger.error(f"Failed to load landing page data: {failures[0]}", exc_info=failures[0])
        return HomeResponse(featured_properties=[], agents=[], error="Could not load data.")

    return HomeResponse(featured_properties=featured, agents=agents)


@router.get(
    "/agents",
    response_model=AgentListResponse,
    summary="Agent directory"
)
async def list_agents(
    agent_service: AgentService = Depends(get_agent_service)
) -> AgentListResponse:
    result = await agent_service.list_agents()
    return AgentListResponse(
        agents=[AgentResponse.model_validate(agent.to_dict()) for agent in result.items],
        error=result.error,
    )


@router.post(
    "/contact",
    status_code=status.HTTP_200_OK,
    summary="Send a contact message"
)
async def contact(
    request: Request,
    notification_service: NotificationService = Depends(get_notification_service)
):
    """
    Email a contact form submission.
    Failures return success=false with the submitted values.
    """
    form = ContactForm.from_form(await request.form())
    try:
        message_id = await notification_service.send_contact(form)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, form.submitted_values(), request)

    return {"success": True, "message_sent": True, "message_id": message_id}
