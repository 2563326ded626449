"""
Tests for the context window compression policy.
"""

import pytest

from context_engine.config import WindowConfig
from context_engine.models import PrioritizedMessages, RetentionRecommendation, TokenAnalysisResult
from context_engine.services.compression_policy import CompressionPolicy


@pytest.fixture(name="policy")
def policy_fixture():
    return CompressionPolicy(WindowConfig())


def _prioritized(retain, compress, should_compress=True):
    return PrioritizedMessages(
        retention=RetentionRecommendation(
            should_compress=should_compress,
            messages_to_retain=retain,
            messages_to_compress=compress
        )
    )


class TestCompressionPolicy:
    """Test when the retained subset replaces the message list."""

    def test_within_budget_keeps_everything(self, policy, make_conversation):
        messages = make_conversation(["m"] * 8)

        decision = policy.apply(
            messages, _prioritized(messages[:2], messages[2:]),
            TokenAnalysisResult(message_tokens=100), available_tokens=100
        )

        assert decision.was_compressed is False
        assert decision.messages == messages

    def test_summary_tokens_count_toward_budget(self, policy, make_conversation):
        messages = make_conversation(["m"] * 8)

        decision = policy.apply(
            messages, _prioritized(messages[:2], messages[2:]),
            TokenAnalysisResult(message_tokens=90, summary_tokens=20), available_tokens=100
        )

        assert decision.was_compressed is True
        assert decision.messages == messages[:2]

    def test_short_conversations_are_never_compressed(self, policy, make_conversation):
        messages = make_conversation(["m"] * 5)

        decision = policy.apply(
            messages, _prioritized(messages[:1], messages[1:]),
            TokenAnalysisResult(message_tokens=5000), available_tokens=10
        )

        assert decision.was_compressed is False
        assert decision.messages == messages

    def test_respects_retention_recommendation(self, policy, make_conversation):
        messages = make_conversation(["m"] * 6)

        decision = policy.apply(
            messages, _prioritized(messages, [], should_compress=False),
            TokenAnalysisResult(message_tokens=5000), available_tokens=10
        )

        assert decision.was_compressed is False
        assert len(decision.messages) == 6

    def test_minimum_floor_from_config(self, make_conversation):
        policy = CompressionPolicy(WindowConfig(min_messages_for_compression=2))
        messages = make_conversation(["m"] * 3)

        decision = policy.apply(
            messages, _prioritized(messages[-1:], messages[:-1]),
            TokenAnalysisResult(message_tokens=5000), available_tokens=10
        )

        assert decision.was_compressed is True
        assert decision.messages == messages[-1:]
