"""
ReAct Agent implementation for the inventory assistant.

The agent alternates between a reasoning phase (one language-model call that
may request tool calls) and an acting phase (executing every requested tool
call and appending the results) until the model answers without requesting a
tool.

States and transitions:
- REASON -> ACT:    the new AI message carries one or more tool calls
- REASON -> DONE:   the new AI message carries no tool calls
- ACT    -> REASON: always, after all tool results are appended
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence

from .errors import (
    AgentAuthenticationError,
    AgentError,
    AgentInvocationError,
    AgentRateLimitError,
    StepLimitExceededError,
    is_authentication_error,
    is_rate_limit_error,
)
from .prompts import AGENT_SYSTEM_PROMPT
from .protocols import ChatModel
from .retry import BackoffExecutor, MaxRetriesExceededError
from .tools.registry import ToolNotFoundError, ToolRegistry
from .types import AgentPhase, AgentRunResult, AgentState, Message, MessageRole, ToolCall


logger = logging.getLogger(__name__)


# Reasoning round-trips allowed per invocation before giving up
DEFAULT_MAX_STEPS = 15


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReasoningStep:
    """
    One model invocation over the running conversation.

    Builds the system prompt (tool descriptions and current time), calls the
    model through the backoff executor and returns exactly one new AI message.
    """

    SYSTEM_PROMPT = AGENT_SYSTEM_PROMPT

    def __init__(
        self,
        chat_model: ChatModel,
        tool_registry: ToolRegistry,
        executor: Optional[BackoffExecutor] = None,
        temperature: float = 0.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._model = chat_model
        self._tools = tool_registry
        self._executor = executor or BackoffExecutor()
        self.temperature = temperature
        self._clock = clock

    def build_system_prompt(self) -> str:
        return self.SYSTEM_PROMPT.format(
            tools_description=self._tools.describe(),
            current_time=self._clock().isoformat(timespec="seconds"),
        )

    async def __call__(self, history: Sequence[Message]) -> Message:
        system_prompt = self.build_system_prompt()
        tools = self._tools.openai_tools() or None
        snapshot = tuple(history)

        message = await self._executor.run(
            lambda: self._model.invoke(
                snapshot,
                system_prompt=system_prompt,
                tools=tools,
                temperature=self.temperature,
            )
        )
        if message.role is not MessageRole.AI:
            raise ValueError(f"Chat model returned a '{message.role.value}' message")
        return message


class ReActAgent:
    """
    Control loop alternating between reasoning and tool execution.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(create_item_lookup_tool(retriever))
        >>> agent = ReActAgent(ReasoningStep(chat_model, registry), registry)
        >>> result = await agent.run(history=(), message="show me a cheap blue sofa")
        >>> print(result.answer)
    """

    def __init__(
        self,
        reasoning_step: Callable[[Sequence[Message]], Awaitable[Message]],
        tool_registry: ToolRegistry,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        """
        Initialize the ReAct Agent.

        Args:
            reasoning_step: Callable producing the next AI message from a history
            tool_registry: Registry of available tools
            max_steps: Maximum reasoning round-trips per invocation (default: 15)
        """
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.reasoning_step = reasoning_step
        self.tools = tool_registry
        self.max_steps = max_steps

    async def run(self, history: Sequence[Message], message: str) -> AgentRunResult:
        """
        Execute the control loop for one user turn.

        Args:
            history: Snapshot of the thread's conversation so far
            message: The user's new message

        Returns:
            AgentRunResult with the final answer and the messages to append

        Raises:
            StepLimitExceededError: The step ceiling was reached
            AgentError: A classified, unrecoverable reasoning failure
        """
        history = tuple(history)
        state = AgentState(messages=history + (Message.human(message),))

        while state.phase is not AgentPhase.DONE:
            if state.phase is AgentPhase.REASON:
                state = await self._reason(state)
            else:
                state = await self._act(state)

        return AgentRunResult(
            answer=state.last_message.content,
            messages=state.messages[len(history):],
            steps=state.steps,
        )

    async def _reason(self, state: AgentState) -> AgentState:
        if state.steps >= self.max_steps:
            logger.error(f"Step limit ({self.max_steps}) reached without a final answer")
            raise StepLimitExceededError(self.max_steps)

        logger.debug(f"Reasoning step {state.steps + 1}/{self.max_steps}")
        try:
            ai_message = await self.reasoning_step(state.messages)
        except AgentError:
            raise
        except Exception as e:
            classified = self.classify_error(e)
            logger.error(
                f"Reasoning failed ({type(classified).__name__}): {e}",
                exc_info=True,
            )
            raise classified from e

        next_phase = AgentPhase.ACT if ai_message.has_tool_calls else AgentPhase.DONE
        return state.advance(next_phase, ai_message, step=True)

    async def _act(self, state: AgentState) -> AgentState:
        tool_calls = state.last_message.tool_calls
        logger.info(
            "Executing %d tool call(s): %s",
            len(tool_calls),
            ", ".join(call.name for call in tool_calls),
        )
        # gather preserves request order in its results
        outputs: List[str] = await asyncio.gather(
            *(self._execute_tool(call) for call in tool_calls)
        )
        tool_messages = [
            Message.tool(output, call) for call, output in zip(tool_calls, outputs)
        ]
        return state.advance(AgentPhase.REASON, *tool_messages)

    async def _execute_tool(self, call: ToolCall) -> str:
        """
        Execute a tool and return the result as a string.

        Unknown tools and tool failures are reported back to the model as
        text so it can recover; they never abort the loop.
        """
        try:
            return await self.tools.invoke(call.name, call.arguments)
        except ToolNotFoundError:
            logger.warning(f"Tool not found: {call.name}")
            available = self.tools.names()
            return f"Error: Tool '{call.name}' not found. Available tools: {available}"
        except Exception as e:
            logger.error(f"Tool execution failed: {call.name} - {e}", exc_info=True)
            return f"Error executing tool '{call.name}': {str(e)}"

    @staticmethod
    def classify_error(exc: BaseException) -> AgentError:
        """Map an upstream failure onto a user-facing agent error."""
        if isinstance(exc, AgentError):
            return exc
        if isinstance(exc, MaxRetriesExceededError) or is_rate_limit_error(exc):
            return AgentRateLimitError()
        if is_authentication_error(exc):
            return AgentAuthenticationError()
        return AgentInvocationError()
