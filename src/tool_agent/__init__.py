"""Tool agent: conversational tool orchestration with retries and usage accounting."""

from .config import AgentConfig, OrchestratorOptions
from .conversation import ConversationStore
from .errors import (
    AgentError,
    ErrorKind,
    InvalidConfigurationError,
    ModelClientError,
    ToolExecutionError,
    classify_error,
)
from .model_client import ModelClient
from .models import (
    ChatResult,
    CompletionOptions,
    CompletionResult,
    ConversationMetadata,
    Message,
    ToolCall,
    ToolDef,
    ToolResult,
    UsageStats,
)
from .orchestrator import AgentOrchestrator, AgentState
from .retry import RetryExecutor, RetryPolicy
from .tools import BaseTool, BaseToolExecutor, GetTimeTool, ToolExecutor

__all__ = [
    "AgentConfig",
    "OrchestratorOptions",
    "ConversationStore",
    "AgentError",
    "ErrorKind",
    "InvalidConfigurationError",
    "ModelClientError",
    "ToolExecutionError",
    "classify_error",
    "ModelClient",
    "ChatResult",
    "CompletionOptions",
    "CompletionResult",
    "ConversationMetadata",
    "Message",
    "ToolCall",
    "ToolDef",
    "ToolResult",
    "UsageStats",
    "AgentOrchestrator",
    "AgentState",
    "RetryExecutor",
    "RetryPolicy",
    "BaseTool",
    "BaseToolExecutor",
    "GetTimeTool",
    "ToolExecutor",
]
