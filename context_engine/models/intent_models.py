"""
Intent classification and knowledge search result models.

These are the shapes returned by the external intent classifier and
knowledge search collaborators.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_INTENT = "unknown"


class IntentResult(BaseModel):
    """Classified intent for a single turn."""
    model_config = ConfigDict(frozen=True)

    primary: str = Field(default=UNKNOWN_INTENT, description="Primary intent label")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    entities: Dict[str, Any] = Field(default_factory=dict)
    reasoning: Optional[str] = None
    alternative_intents: List[str] = Field(default_factory=list)

    @classmethod
    def unknown(cls) -> "IntentResult":
        """Placeholder used before any intent has been classified."""
        return cls(primary=UNKNOWN_INTENT, confidence=0.0, reasoning="No intent classified yet")

    @property
    def is_unknown(self) -> bool:
        return self.primary == UNKNOWN_INTENT


class KnowledgeItem(BaseModel):
    """A ranked knowledge snippet returned by the knowledge search."""
    id: str
    title: str = ""
    content: str
    category: Optional[str] = None
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    source: Optional[str] = None
