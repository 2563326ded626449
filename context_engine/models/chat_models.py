"""
Conversation message and context window models.

Based on Pydantic v2. Messages are immutable records owned by the
conversation; derived collections only filter or copy them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field

from context_engine.config import WindowConfig
from context_engine.models.intent_models import IntentResult, KnowledgeItem


class MessageRole(str, Enum):
    """Sender role of a conversation message."""
    USER = "user"
    BOT = "bot"
    SYSTEM = "system"


class Message(BaseModel):
    """
    A single message in a widget conversation.

    Frozen: the engine never mutates messages, it only selects them.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique message identifier")
    content: str = Field(..., description="The message text")
    role: MessageRole = Field(..., description="Who sent the message")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the message was created"
    )
    is_visible: bool = Field(default=True, description="Whether the visitor can see the message")
    session_id: Optional[str] = Field(default=None, description="Owning chat session")
    processing_time_ms: Optional[int] = Field(default=None, ge=0)

    def is_from_user(self) -> bool:
        return self.role == MessageRole.USER

    @property
    def prompt_role(self) -> Literal["user", "assistant", "system"]:
        """Role name used in LLM prompt payloads."""
        if self.role == MessageRole.USER:
            return "user"
        if self.role == MessageRole.BOT:
            return "assistant"
        return "system"

    def to_langchain(self) -> BaseMessage:
        """Convert to the matching LangChain message type for prompt assembly."""
        kwargs = {"content": self.content, "id": self.id}
        if self.role == MessageRole.USER:
            return HumanMessage(**kwargs)
        if self.role == MessageRole.BOT:
            return AIMessage(**kwargs)
        return SystemMessage(**kwargs)


class ContextWindow(BaseModel):
    """
    Token layout of the model's context window.

    Messages may only use what is left after the system prompt, the reserved
    response tokens and the summary allowance.
    """
    model_config = ConfigDict(frozen=True)

    max_tokens: int = Field(default=16000, gt=0)
    system_prompt_tokens: int = Field(default=800, ge=0)
    response_reserved_tokens: int = Field(default=3500, ge=0)
    summary_tokens: int = Field(default=300, ge=0)

    @classmethod
    def from_config(cls, config: WindowConfig) -> "ContextWindow":
        return cls(
            max_tokens=config.max_tokens,
            system_prompt_tokens=config.system_prompt_tokens,
            response_reserved_tokens=config.response_reserved_tokens,
            summary_tokens=config.summary_tokens
        )

    @property
    def available_tokens_for_messages(self) -> int:
        return max(
            0,
            self.max_tokens
            - self.system_prompt_tokens
            - self.response_reserved_tokens
            - self.summary_tokens
        )


class TokenUsage(BaseModel):
    """Token usage breakdown of a context window result."""
    message_tokens: int = Field(default=0, ge=0)
    summary_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class PromptMessage(BaseModel):
    """A retained message shaped for the prompt payload."""
    id: str
    content: str
    role: Literal["user", "assistant", "system"]
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_message(cls, message: Message) -> "PromptMessage":
        return cls(
            id=message.id,
            content=message.content,
            role=message.prompt_role,
            timestamp=message.timestamp,
            metadata={
                "session_id": message.session_id,
                "processing_time_ms": message.processing_time_ms,
                "is_visible": message.is_visible
            }
        )


class ContextWindowResult(BaseModel):
    """Messages selected for the prompt together with their token usage."""
    messages: List[PromptMessage] = Field(default_factory=list)
    summary: Optional[str] = None
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    was_compressed: bool = False

    def to_langchain_messages(self) -> List[BaseMessage]:
        """Render the retained messages as LangChain messages."""
        converted: List[BaseMessage] = []
        for message in self.messages:
            if message.role == "user":
                converted.append(HumanMessage(content=message.content, id=message.id))
            elif message.role == "assistant":
                converted.append(AIMessage(content=message.content, id=message.id))
            else:
                converted.append(SystemMessage(content=message.content, id=message.id))
        return converted


class ContextAnalysis(BaseModel):
    """Per-turn conversation analysis used for prompt enrichment."""
    topics: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"
    engagement_level: Literal["low", "medium", "high"] = "low"
    user_intent: str = "unknown"
    urgency: Literal["low", "medium", "high"] = "low"
    conversation_stage: str = "discovery"
    intent_result: Optional[IntentResult] = None
    relevant_knowledge: Optional[List[KnowledgeItem]] = None
    knowledge_retrieval_threshold: float = 0.15


class ConversationSummary(BaseModel):
    """High-level summary of a conversation for downstream prompts."""
    overview: str
    key_topics: List[str] = Field(default_factory=list)
    user_needs: List[str] = Field(default_factory=list)
    pain_points: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    qualification_status: str = "unknown"


class ApiAnalysisData(BaseModel):
    """Conversation insights supplied by the upstream LLM analysis call."""
    urgency: Optional[Literal["low", "medium", "high"]] = None
    pain_points: List[str] = Field(default_factory=list)
    integration_needs: List[str] = Field(default_factory=list)
    evaluation_criteria: List[str] = Field(default_factory=list)
    persona_evidence: List[str] = Field(default_factory=list)
    engagement_level: Optional[float] = Field(default=None, ge=0, le=10)
    next_steps: List[str] = Field(default_factory=list)
    qualification_status: Optional[str] = None
