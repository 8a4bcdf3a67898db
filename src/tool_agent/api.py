"""FastAPI router exposing the agent: chat, stats, export, clear and delete."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from .models import ToolCall, UsageStats
from .orchestrator import AgentOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONVERSATIONS = 1000


class ConversationRegistry:
    """One orchestrator per conversation id, each guarded by its own lock.

    Holds at most ``max_conversations`` orchestrators; creating one more
    evicts the least recently used conversation.
    """

    def __init__(
        self,
        agent_factory: Callable[[], AgentOrchestrator],
        max_conversations: int = DEFAULT_MAX_CONVERSATIONS,
    ) -> None:
        if max_conversations < 1:
            raise ValueError("max_conversations must be at least 1")
        self._agent_factory = agent_factory
        self._max_conversations = max_conversations
        self._agents: OrderedDict[str, AgentOrchestrator] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def create(self) -> tuple[str, AgentOrchestrator]:
        agent = self._agent_factory()
        conversation_id = agent.get_conversation_metadata().id
        self._agents[conversation_id] = agent
        self._locks[conversation_id] = asyncio.Lock()
        while len(self._agents) > self._max_conversations:
            evicted, _ = self._agents.popitem(last=False)
            self._locks.pop(evicted, None)
            logger.info("Evicted least recently used conversation %s", evicted)
        return conversation_id, agent

    def get(self, conversation_id: str) -> AgentOrchestrator | None:
        agent = self._agents.get(conversation_id)
        if agent is not None:
            self._agents.move_to_end(conversation_id)
        return agent

    def remove(self, conversation_id: str) -> bool:
        self._locks.pop(conversation_id, None)
        return self._agents.pop(conversation_id, None) is not None

    def lock(self, conversation_id: str) -> asyncio.Lock:
        return self._locks.setdefault(conversation_id, asyncio.Lock())

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)


def get_registry(request: Request) -> ConversationRegistry:
    return request.app.state.registry


router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    message: str = Field(..., min_length=1, description="User message")
    conversation_id: str | None = Field(None, description="Optional conversation id to continue")


class ChatResponse(BaseModel):
    """Response for POST /chat."""

    conversation_id: str
    success: bool
    reply: str = ""
    error: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    message_count: int = 0


def _require_agent(registry: ConversationRegistry, conversation_id: str) -> AgentOrchestrator:
    agent = registry.get(conversation_id)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"Unknown conversation: {conversation_id}")
    return agent


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest, registry: ConversationRegistry = Depends(get_registry)
) -> ChatResponse:
    """Run the agent loop for one user message and return the reply."""
    if request.conversation_id:
        conversation_id = request.conversation_id
        agent = _require_agent(registry, conversation_id)
    else:
        try:
            conversation_id, agent = registry.create()
        except Exception as e:
            logger.exception("Could not create agent")
            raise HTTPException(status_code=500, detail=str(e)) from e

    async with registry.lock(conversation_id):
        result = await agent.chat(request.message)

    return ChatResponse(
        conversation_id=conversation_id,
        success=result.success,
        reply=result.message or "",
        error=result.error,
        tool_calls=result.tool_calls or [],
        message_count=agent.get_conversation_metadata().message_count,
    )


@router.get("/{conversation_id}/stats", response_model=UsageStats)
async def stats(
    conversation_id: str, registry: ConversationRegistry = Depends(get_registry)
) -> UsageStats:
    return _require_agent(registry, conversation_id).get_stats()


@router.get("/{conversation_id}/export")
async def export(
    conversation_id: str, registry: ConversationRegistry = Depends(get_registry)
) -> dict[str, Any]:
    return _require_agent(registry, conversation_id).export_conversation()


@router.delete("/{conversation_id}/history", status_code=204)
async def clear(
    conversation_id: str, registry: ConversationRegistry = Depends(get_registry)
) -> None:
    agent = _require_agent(registry, conversation_id)
    async with registry.lock(conversation_id):
        agent.clear_conversation()


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: str, registry: ConversationRegistry = Depends(get_registry)
) -> None:
    """Drop the conversation and its orchestrator."""
    _require_agent(registry, conversation_id)
    async with registry.lock(conversation_id):
        registry.remove(conversation_id)
    logger.info("Conversation %s deleted", conversation_id)
