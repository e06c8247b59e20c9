"""
Core types and data models for the Agent module.

This module defines the conversation messages exchanged with the language
model, the tool schema, the inventory item records and the search result
envelopes returned by the hybrid retriever.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


class MessageRole(str, Enum):
    """Author of a message in a conversation history."""
    HUMAN = "human"
    AI = "ai"
    TOOL = "tool"


class ToolCall(BaseModel):
    """A model-issued request to invoke a named tool."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier linking the call to its result message")
    name: str = Field(description="Name of the tool to invoke")
    arguments: str = Field(
        default="{}",
        description="Raw JSON argument string as produced by the model",
    )


class Message(BaseModel):
    """A single immutable entry in a conversation history."""
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = Field(default_factory=tuple)
    tool_call_id: Optional[str] = Field(
        default=None,
        description="For tool messages: the id of the ToolCall this answers",
    )
    name: Optional[str] = Field(default=None, description="For tool messages: the tool name")

    @classmethod
    def human(cls, content: str) -> "Message":
        return cls(role=MessageRole.HUMAN, content=content)

    @classmethod
    def ai(cls, content: str, tool_calls: Tuple[ToolCall, ...] = ()) -> "Message":
        return cls(role=MessageRole.AI, content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, content: str, tool_call: ToolCall) -> "Message":
        return cls(
            role=MessageRole.TOOL,
            content=content,
            tool_call_id=tool_call.id,
            name=tool_call.name,
        )

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ToolSchema(BaseModel):
    """Schema definition for a callable tool."""
    name: str = Field(description="Unique identifier for the tool")
    description: str = Field(description="Human-readable description of what the tool does")
    parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="JSON Schema defining the tool's parameters"
    )
    required: List[str] = Field(
        default_factory=list,
        description="List of required parameter names"
    )

    def to_openai(self) -> Dict[str, Any]:
        """Render the schema in the chat completions ``tools`` format."""
        parameters = dict(self.parameters or {"type": "object", "properties": {}})
        if self.required:
            parameters["required"] = list(self.required)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


class Tool(BaseModel):
    """A callable tool with its schema and async handler.

    The handler receives the raw argument string issued by the model and
    returns the text fed back to the model as the tool result.
    """
    schema_: ToolSchema = Field(alias="schema", description="The tool's schema definition")
    handler: Callable[[str], Awaitable[str]] = Field(
        description="Coroutine function invoked with the raw argument string"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    def __eq__(self, other: object) -> bool:
        """Check equality based on schema (handler comparison is complex)."""
        if not isinstance(other, Tool):
            return False
        return self.schema_ == other.schema_

    def __hash__(self) -> int:
        return hash(self.schema_.name)


# --- Inventory records ------------------------------------------------------

class ItemPrices(BaseModel):
    full_price: float = Field(ge=0)
    sale_price: float = Field(ge=0)


class Item(BaseModel):
    """A furniture record as produced by the seeding process."""
    item_id: str
    item_name: str
    item_description: str = ""
    brand: str = ""
    manufacturer_country: str = ""
    prices: ItemPrices
    categories: List[str] = Field(default_factory=list)
    notes: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def summary(self) -> str:
        """Searchable text the embedding is computed from."""
        return (
            f"{self.item_name} {self.item_description} from the brand {self.brand}. "
            f"Manufacturer: Made in {self.manufacturer_country}. "
            f"Categories: {', '.join(self.categories)}. "
            f"Price: At full price it costs: {self.prices.full_price} USD, "
            f"On sale it costs: {self.prices.sale_price} USD. "
            f"Notes: {self.notes}"
        )


class ScoredItem(Item):
    """An item returned by similarity search with its similarity score."""
    score: float


class SearchEnvelope(BaseModel):
    """Uniform result of a successful inventory search."""
    model_config = ConfigDict(populate_by_name=True)

    results: List[Union[ScoredItem, Item]] = Field(default_factory=list)
    search_type: Literal["vector", "text"] = Field(alias="searchType")
    query: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.results)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class SearchErrorEnvelope(BaseModel):
    """Search outcome reported as data instead of an exception."""
    error: str
    details: str
    query: str
    count: Literal[0] = 0

    def to_json(self) -> str:
        return self.model_dump_json()


SearchOutcome = Union[SearchEnvelope, SearchErrorEnvelope]


# --- Control loop state -------------------------------------------------------

class AgentPhase(Enum):
    """States of the reason/act control loop."""
    REASON = "reason"
    ACT = "act"
    DONE = "done"


class AgentState(BaseModel):
    """Closed state carried through the control loop."""
    model_config = ConfigDict(frozen=True)

    messages: Tuple[Message, ...]
    phase: AgentPhase = AgentPhase.REASON
    steps: int = Field(default=0, ge=0, description="Reasoning round-trips taken so far")

    @property
    def last_message(self) -> Message:
        return self.messages[-1]

    def advance(self, phase: AgentPhase, *new_messages: Message, step: bool = False) -> "AgentState":
        return AgentState(
            messages=self.messages + tuple(new_messages),
            phase=phase,
            steps=self.steps + (1 if step else 0),
        )


class AgentRunResult(BaseModel):
    """Outcome of one control-loop invocation."""
    answer: str = Field(description="Content of the final AI message")
    messages: Tuple[Message, ...] = Field(
        description="Delta to append to the thread: the human message and everything after it"
    )
    steps: int = Field(ge=0, description="Reasoning round-trips taken")
