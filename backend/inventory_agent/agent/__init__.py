"""
Agent module for the inventory assistant.

This module provides:
- Conversation and inventory types
- Rate-limit backoff for upstream calls
- Hybrid retrieval (vector search with lexical fallback)
- The item_lookup tool and tool registry
- ReAct control loop and reasoning step
"""

from .types import (
    AgentPhase,
    AgentRunResult,
    AgentState,
    Item,
    ItemPrices,
    Message,
    MessageRole,
    ScoredItem,
    SearchEnvelope,
    SearchErrorEnvelope,
    Tool,
    ToolCall,
    ToolSchema,
)
from .errors import (
    AgentAuthenticationError,
    AgentError,
    AgentInvocationError,
    AgentRateLimitError,
    StepLimitExceededError,
)
from .retry import BackoffExecutor, MaxRetriesExceededError
from .react_agent import ReActAgent, ReasoningStep

__all__ = [
    "AgentPhase",
    "AgentRunResult",
    "AgentState",
    "Item",
    "ItemPrices",
    "Message",
    "MessageRole",
    "ScoredItem",
    "SearchEnvelope",
    "SearchErrorEnvelope",
    "Tool",
    "ToolCall",
    "ToolSchema",
    "AgentAuthenticationError",
    "AgentError",
    "AgentInvocationError",
    "AgentRateLimitError",
    "StepLimitExceededError",
    "BackoffExecutor",
    "MaxRetriesExceededError",
    "ReActAgent",
    "ReasoningStep",
]
