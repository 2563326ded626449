"""
Tests for context engine configuration.

Covers defaults, environment loading, validation and the global
configuration accessors.
"""

import pytest

from context_engine.config import (
    BudgetConfig,
    ContextEngineConfig,
    RelevanceConfig,
    WindowConfig,
    get_budget_config,
    get_engine_config,
    get_relevance_config,
    get_window_config,
    reload_engine_config,
)
from context_engine.exceptions import ConfigurationError


class TestWindowConfig:
    """Test WindowConfig defaults and environment loading."""

    def test_default_config(self):
        """Test default window configuration."""
        config = WindowConfig()

        assert config.max_tokens == 16000
        assert config.system_prompt_tokens == 800
        assert config.response_reserved_tokens == 3500
        assert config.summary_tokens == 300
        assert config.tokens_per_retained_message == 100
        assert config.min_messages_for_compression == 5
        assert config.token_cache_capacity == 100

    def test_from_env(self, monkeypatch):
        """Test loading window settings from environment variables."""
        monkeypatch.setenv("CONTEXT_ENGINE_MAX_TOKENS", "8000")
        monkeypatch.setenv("CONTEXT_ENGINE_TOKEN_CACHE_CAPACITY", "10")

        config = WindowConfig.from_env()

        assert config.max_tokens == 8000
        assert config.token_cache_capacity == 10
        assert config.summary_tokens == 300


class TestRelevanceConfig:
    """Test RelevanceConfig weights."""

    def test_default_weights_sum_to_one(self):
        config = RelevanceConfig()

        assert config.total_weight == pytest.approx(1.0)
        assert config.entity_weight == 0.25
        assert config.business_weight == 0.25

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CONTEXT_ENGINE_RECENCY_DECAY_RATE", "2.5")

        config = RelevanceConfig.from_env()

        assert config.recency_decay_rate == 2.5


class TestContextEngineConfig:
    """Test the composite configuration."""

    def test_nested_defaults(self):
        config = ContextEngineConfig()

        assert isinstance(config.window, WindowConfig)
        assert isinstance(config.relevance, RelevanceConfig)
        assert isinstance(config.budget, BudgetConfig)
        assert config.budget.module_token_budget == 1500

    def test_to_dict(self):
        data = ContextEngineConfig().to_dict()

        assert data["window"]["max_tokens"] == 16000
        assert data["relevance"]["recency_weight"] == 0.20
        assert data["budget"]["early_conversation_threshold"] == 2
        assert data["logging"]["log_level"] == "info"

    def test_validate_accepts_defaults(self):
        ContextEngineConfig().validate()

    def test_validate_rejects_reserved_overflow(self):
        """Reserved tokens must leave room for messages."""
        config = ContextEngineConfig(window=WindowConfig(max_tokens=1000))

        with pytest.raises(ConfigurationError):
            config.validate()

    def test_validate_rejects_unbalanced_weights(self):
        config = ContextEngineConfig(relevance=RelevanceConfig(recency_weight=0.5))

        with pytest.raises(ConfigurationError, match="sum to 1.0"):
            config.validate()

    def test_validate_rejects_unknown_log_level(self, monkeypatch):
        monkeypatch.setenv("CONTEXT_ENGINE_LOG_LEVEL", "verbose")

        with pytest.raises(ConfigurationError):
            reload_engine_config()


class TestGlobalConfig:
    """Test the global configuration accessors."""

    def test_singleton(self):
        assert get_engine_config() is get_engine_config()

    def test_section_accessors(self):
        config = get_engine_config()

        assert get_window_config() is config.window
        assert get_relevance_config() is config.relevance
        assert get_budget_config() is config.budget

    def test_reload_picks_up_environment(self, monkeypatch):
        monkeypatch.setenv("CONTEXT_ENGINE_MODULE_TOKEN_BUDGET", "900")

        config = reload_engine_config()

        assert config.budget.module_token_budget == 900
        assert get_budget_config().module_token_budget == 900
