"""
Agent Service - the thread-scoped entry point of the inventory agent.

Maps an external thread identifier to its persisted conversation history,
runs the ReAct control loop over a snapshot of that history, and appends the
resulting messages to the thread.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Optional

from ..core.config import get_settings, Settings
from ..agent.errors import AgentError, AgentInvocationError
from ..agent.protocols import ChatModel, CheckpointStore, Embedder, InventoryStore
from ..agent.react_agent import ReActAgent, ReasoningStep
from ..agent.retrieval.hybrid_retriever import HybridRetriever
from ..agent.retrieval.inventory_store import ChromaInventoryStore, create_chroma_client
from ..agent.retry import BackoffExecutor
from ..agent.tools.item_lookup import create_item_lookup_tool
from ..agent.tools.registry import ToolRegistry
from ..logging_utils import bind_thread_context, reset_thread_context
from .checkpoint_service import create_checkpoint_store
from .direct_answer_service import DirectAnswerService
from .llm_service import OpenAIChatModel, OpenAIEmbedder, create_openai_client


logger = logging.getLogger(__name__)


class AgentService:
    """
    Orchestrates the agent components behind ``invoke(thread_id, message)``.

    All collaborators are passed in explicitly; ``build_agent_service`` wires
    the production ones from settings.

    Example:
        >>> service = build_agent_service()
        >>> answer = await service.invoke("thread-1", "show me a cheap blue sofa")
        >>> follow_up = await service.invoke("thread-1", "does it come in green?")
    """

    def __init__(
        self,
        chat_model: ChatModel,
        embedder: Embedder,
        store: InventoryStore,
        checkpoints: CheckpointStore,
        settings: Optional[Settings] = None,
        executor: Optional[BackoffExecutor] = None,
    ) -> None:
        """
        Initialize the AgentService with all components.

        Args:
            chat_model: Language model used for reasoning and direct answers
            embedder: Embedding model used for query vectors
            store: Inventory collection
            checkpoints: Per-thread conversation store
            settings: Application settings (uses defaults if not provided)
            executor: Backoff policy (built from settings if not provided)
        """
        self._settings = settings or get_settings()
        self._checkpoints = checkpoints
        self._executor = executor or BackoffExecutor(
            max_retries=self._settings.backoff_max_retries,
            base_delay_ms=self._settings.backoff_base_delay_ms,
            max_delay_ms=self._settings.backoff_max_delay_ms,
        )

        self._retriever = HybridRetriever(store=store, embedder=embedder, executor=self._executor)

        self._tool_registry = ToolRegistry()
        self._tool_registry.register(
            create_item_lookup_tool(self._retriever, default_n=self._settings.item_lookup_default_n)
        )

        self._agent = ReActAgent(
            reasoning_step=ReasoningStep(
                chat_model=chat_model,
                tool_registry=self._tool_registry,
                executor=self._executor,
                temperature=self._settings.agent_temperature,
            ),
            tool_registry=self._tool_registry,
            max_steps=self._settings.agent_max_steps,
        )

        self._direct = DirectAnswerService(
            retriever=self._retriever,
            chat_model=chat_model,
            executor=self._executor,
            temperature=self._settings.direct_answer_temperature,
            k=self._settings.direct_answer_k,
        )

        logger.info(
            "AgentService initialized",
            extra={
                "max_steps": self._settings.agent_max_steps,
                "max_retries": self._settings.backoff_max_retries,
            },
        )

    @property
    def agent(self) -> ReActAgent:
        """Get the ReAct agent."""
        return self._agent

    @property
    def retriever(self) -> HybridRetriever:
        """Get the hybrid retriever."""
        return self._retriever

    @property
    def tool_registry(self) -> ToolRegistry:
        """Get the tool registry."""
        return self._tool_registry

    @property
    def checkpoints(self) -> CheckpointStore:
        """Get the conversation checkpoint store."""
        return self._checkpoints

    async def invoke(self, thread_id: str, message: str) -> str:
        """
        Answer ``message`` in the conversation identified by ``thread_id``.

        Args:
            thread_id: Opaque conversation key
            message: The user's new message

        Returns:
            The agent's final answer

        Raises:
            AgentError: A classified failure (rate limit, authentication,
                step limit or generic); nothing is persisted in that case
        """
        token = bind_thread_context(thread_id)
        start_time = time.perf_counter()
        try:
            try:
                history = await self._checkpoints.load(thread_id)
            except Exception as e:
                logger.error(f"Failed to load conversation history: {e}", exc_info=True)
                raise AgentInvocationError() from e

            try:
                result = await self._agent.run(history=history, message=message)
            except AgentError as e:
                logger.error(
                    f"Agent invocation failed: {e.user_message}",
                    exc_info=e.__cause__ is not None,
                )
                raise

            try:
                await self._checkpoints.save(thread_id, result.messages)
            except Exception as e:
                logger.error(f"Failed to save conversation history: {e}", exc_info=True)
                raise AgentInvocationError() from e

            logger.info(
                "Agent invocation completed",
                extra={
                    "steps": result.steps,
                    "new_messages": len(result.messages),
                    "latency_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
            )
            return result.answer
        finally:
            reset_thread_context(token)

    async def start_thread(self, message: str) -> tuple[str, str]:
        """Open a new thread and answer its first message."""
        thread_id = new_thread_id()
        answer = await self.invoke(thread_id, message)
        return thread_id, answer

    async def direct_answer(self, message: str) -> str:
        """Answer without the tool loop or conversation state."""
        return await self._direct.answer(message)


def new_thread_id() -> str:
    return str(uuid.uuid4())


def build_agent_service(settings: Optional[Settings] = None) -> AgentService:
    """Construct the production collaborators once and wire them together."""
    settings = settings or get_settings()
    openai_client = create_openai_client(settings)
    store = ChromaInventoryStore(
        create_chroma_client(settings),
        collection_name=settings.chroma_collection,
    )
    return AgentService(
        chat_model=OpenAIChatModel(openai_client, model=settings.openai_chat_model),
        embedder=OpenAIEmbedder(openai_client, model=settings.openai_embedding_model),
        store=store,
        checkpoints=create_checkpoint_store(settings),
        settings=settings,
    )


# Dependency injection helper
_agent_service_instance: Optional[AgentService] = None


def get_agent_service() -> AgentService:
    """
    Get or create the singleton AgentService instance.

    Returns:
        The AgentService instance
    """
    global _agent_service_instance
    if _agent_service_instance is None:
        _agent_service_instance = build_agent_service()
    return _agent_service_instance


def reset_agent_service() -> None:
    """Reset the singleton AgentService instance (useful for testing)."""
    global _agent_service_instance
    _agent_service_instance = None
