"""Run the FastAPI app for the imagery assistant agent."""

from __future__ import annotations

import logging
import os

import uvicorn
from fastapi import FastAPI

from src.tool_agent import AgentConfig, AgentOrchestrator, ModelClient, ToolExecutor
from src.tool_agent.api import ConversationRegistry, router
from src.tool_agent.tools import get_default_tools

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def build_agent() -> AgentOrchestrator:
    """One orchestrator per conversation, configured from the environment.

    Only the built-in get_time tool is registered here; domain tools are
    added by passing them to the ToolExecutor.
    """
    return AgentOrchestrator(
        model_client=ModelClient(AgentConfig.from_env()),
        tool_executor=ToolExecutor(get_default_tools()),
    )


app = FastAPI(title="Imagery Assistant", version="0.1.0")
app.state.registry = ConversationRegistry(
    build_agent, max_conversations=int(os.getenv("MAX_CONVERSATIONS", "1000"))
)
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
