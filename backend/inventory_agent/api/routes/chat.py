"""
Chat API endpoints for the inventory agent.

- POST /chat               start a new conversation thread
- POST /chat/direct        one-shot answer without the tool loop
- POST /chat/{thread_id}   continue an existing thread
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ...agent.errors import (
    AgentAuthenticationError,
    AgentError,
    AgentRateLimitError,
)
from ...services.agent_service import AgentService, get_agent_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    """Request body for chat endpoints."""
    message: str = Field(min_length=1, description="The customer's message")


class ChatResponse(BaseModel):
    """Response from the threaded chat endpoints."""
    model_config = ConfigDict(populate_by_name=True)

    thread_id: str = Field(alias="threadId", description="Conversation thread identifier")
    response: str = Field(description="The agent's final answer")


class DirectChatResponse(BaseModel):
    response: str


def get_agent_service_dep() -> AgentService:
    """Dependency for getting the AgentService instance."""
    return get_agent_service()


def _status_for(exc: AgentError) -> int:
    if isinstance(exc, AgentRateLimitError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, AgentAuthenticationError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.post("", response_model=ChatResponse, response_model_by_alias=True)
async def start_chat(
    payload: ChatRequest,
    agent_service: AgentService = Depends(get_agent_service_dep),
) -> ChatResponse:
    """Start a new conversation and answer its first message."""
    try:
        thread_id, answer = await agent_service.start_thread(payload.message)
    except AgentError as exc:
        raise HTTPException(status_code=_status_for(exc), detail=exc.user_message) from exc
    return ChatResponse(thread_id=thread_id, response=answer)


@router.post("/direct", response_model=DirectChatResponse)
async def direct_chat(
    payload: ChatRequest,
    agent_service: AgentService = Depends(get_agent_service_dep),
) -> DirectChatResponse:
    """Answer from the top matching products without the tool loop."""
    answer = await agent_service.direct_answer(payload.message)
    return DirectChatResponse(response=answer)


@router.post("/{thread_id}", response_model=ChatResponse, response_model_by_alias=True)
async def continue_chat(
    thread_id: str,
    payload: ChatRequest,
    agent_service: AgentService = Depends(get_agent_service_dep),
) -> ChatResponse:
    """Continue the conversation identified by ``thread_id``."""
    try:
        answer = await agent_service.invoke(thread_id, payload.message)
    except AgentError as exc:
        raise HTTPException(status_code=_status_for(exc), detail=exc.user_message) from exc
    return ChatResponse(thread_id=thread_id, response=answer)
