from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from ..agent.types import Message, MessageRole, ToolCall
from ..core.config import Settings, get_settings


def create_openai_client(settings: Optional[Settings] = None) -> AsyncOpenAI:
    settings = settings or get_settings()
    kwargs: Dict[str, Any] = {}
    if settings.openai_api_key:
        kwargs["api_key"] = settings.openai_api_key
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    # retries are owned by BackoffExecutor
    return AsyncOpenAI(max_retries=0, **kwargs)


def to_openai_messages(
    messages: Sequence[Message],
    system_prompt: Optional[str] = None,
) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    if system_prompt:
        payload.append({"role": "system", "content": system_prompt})
    for message in messages:
        if message.role is MessageRole.HUMAN:
            payload.append({"role": "user", "content": message.content})
        elif message.role is MessageRole.AI:
            entry: Dict[str, Any] = {"role": "assistant", "content": message.content or None}
            if message.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": call.arguments},
                    }
                    for call in message.tool_calls
                ]
            payload.append(entry)
        else:
            payload.append({
                "role": "tool",
                "tool_call_id": message.tool_call_id or "",
                "content": message.content,
            })
    return payload


def from_openai_message(raw: Any) -> Message:
    tool_calls: List[ToolCall] = []
    for call in getattr(raw, "tool_calls", None) or []:
        function = getattr(call, "function", None)
        if function is None:
            continue
        tool_calls.append(ToolCall(
            id=call.id,
            name=function.name,
            arguments=function.arguments or "{}",
        ))
    return Message.ai(content=getattr(raw, "content", None) or "", tool_calls=tuple(tool_calls))


class OpenAIChatModel:
    """Chat completions with native function calling."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        max_tokens: int = 1000,
    ):
        settings = get_settings()
        self.client = client or create_openai_client(settings)
        self.model = model or settings.openai_chat_model
        self.max_tokens = max_tokens
        self.logger = logging.getLogger("inventory_agent.services.llm")

    async def invoke(
        self,
        messages: Sequence[Message],
        *,
        system_prompt: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.0,
    ) -> Message:
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": to_openai_messages(messages, system_prompt),
            "temperature": temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            request["tools"] = tools

        start = time.perf_counter()
        response = await self.client.chat.completions.create(**request)
        message = from_openai_message(response.choices[0].message)
        self.logger.info(
            "Chat completion finished",
            extra={
                "model": self.model,
                "tool_calls": len(message.tool_calls),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return message


class OpenAIEmbedder:
    """Query and document embeddings from the OpenAI embeddings endpoint."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        batch_size: int = 100,
    ):
        settings = get_settings()
        self.client = client or create_openai_client(settings)
        self.model = model or settings.openai_embedding_model
        self.batch_size = batch_size

    async def embed_query(self, text: str) -> List[float]:
        response = await self.client.embeddings.create(model=self.model, input=[text])
        return list(response.data[0].embedding)

    async def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        vectors: List[List[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = list(texts[start:start + self.batch_size])
            response = await self.client.embeddings.create(model=self.model, input=batch)
            ordered = sorted(response.data, key=lambda d: d.index)
            vectors.extend(list(d.embedding) for d in ordered)
        return vectors
