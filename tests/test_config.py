from pathlib import Path

import pytest
from pydantic import ValidationError

from api_test_orchestrator.config import DEFAULT_MODEL, GeneratorConfig


class TestGeneratorConfig:
    def test_defaults(self):
        config = GeneratorConfig()
        assert config.model == DEFAULT_MODEL
        assert config.max_retries == 3
        assert config.initial_backoff_ms == 1000
        assert config.thread_pool_size == 4
        assert config.timeout_ms == 60_000
        assert config.use_fallback_on_error is True
        assert config.input_path is None

    def test_explicit_values(self):
        config = GeneratorConfig(input_path="api.yaml", max_retries=0, use_fallback_on_error=False)
        assert config.input_path == Path("api.yaml")
        assert config.max_retries == 0
        assert config.use_fallback_on_error is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("APITEST_MAX_RETRIES", "5")
        monkeypatch.setenv("APITEST_USE_FALLBACK_ON_ERROR", "false")
        config = GeneratorConfig()
        assert config.max_retries == 5
        assert config.use_fallback_on_error is False

    @pytest.mark.parametrize(
        "field, value",
        [
            ("thread_pool_size", 0),
            ("max_retries", -1),
            ("initial_backoff_ms", 0),
            ("timeout_ms", 0),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            GeneratorConfig(**{field: value})

    def test_immutable(self):
        config = GeneratorConfig()
        with pytest.raises(ValidationError):
            config.max_retries = 10
