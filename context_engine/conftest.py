"""
Pytest configuration and fixtures for context engine tests.

This module provides shared test fixtures and configuration for all test files.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import List, Sequence

import pytest

from context_engine.config import reload_engine_config
from context_engine.models import ContextWindow, IntentResult, Message, MessageRole, SessionSnapshot


class FakeTokenCounter:
    """Deterministic token counter: ceil(characters / 4), tracks calls."""

    def __init__(self):
        self.count_messages_calls = 0
        self.count_text_calls = 0

    async def count_text(self, text: str) -> int:
        self.count_text_calls += 1
        return math.ceil(len(text) / 4) if text else 0

    async def count_message(self, message: Message) -> int:
        return await self.count_text(message.content)

    async def count_messages(self, messages: Sequence[Message]) -> int:
        self.count_messages_calls += 1
        return sum(math.ceil(len(message.content) / 4) for message in messages)


@pytest.fixture(autouse=True)
def reset_engine_config():
    """Reload the global configuration so tests never share env overrides."""
    reload_engine_config()
    yield
    reload_engine_config()


@pytest.fixture(name="token_counter")
def token_counter_fixture():
    return FakeTokenCounter()


@pytest.fixture(name="make_message")
def make_message_fixture():
    """Factory for messages with sequential ids and timestamps."""
    base_time = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    counter = {"value": 0}

    def _make(content: str, role: MessageRole = MessageRole.USER, message_id: str = None) -> Message:
        counter["value"] += 1
        index = counter["value"]
        return Message(
            id=message_id or f"msg-{index}",
            content=content,
            role=role,
            timestamp=base_time + timedelta(minutes=index),
            session_id="session-1"
        )

    return _make


@pytest.fixture(name="make_conversation")
def make_conversation_fixture(make_message):
    """Build an alternating user/bot conversation from a list of texts."""
    def _make(contents: List[str]) -> List[Message]:
        return [
            make_message(content, MessageRole.USER if index % 2 == 0 else MessageRole.BOT)
            for index, content in enumerate(contents)
        ]

    return _make


@pytest.fixture(name="window")
def window_fixture():
    return ContextWindow()


@pytest.fixture(name="session_snapshot")
def session_snapshot_fixture():
    return SessionSnapshot(id="session-1", topics=["pricing", "integrations"], interests=["automation"])


@pytest.fixture(name="business_message_text")
def business_message_text_fixture():
    """A message hitting every entity, pricing keyword and business pattern."""
    return (
        "I'm the director at Acme and we have a $50k budget for next quarter. "
        "What does pricing cost per plan? Our problem is manual reporting, we need a solution. "
        "Comparing options now, is a demo possible? Great, can you send a quote?"
    )


@pytest.fixture(name="filler_message_text")
def filler_message_text_fixture():
    """A message with no business signal at all."""
    return "Just browsing around the site today, nothing specific yet."


@pytest.fixture(name="business_entities")
def business_entities_fixture():
    return {"budget": "$50k", "company": "Acme", "role": "director", "timeline": "next quarter"}


@pytest.fixture(name="pricing_intent")
def pricing_intent_fixture():
    return IntentResult(primary="pricing_inquiry", confidence=0.9)
