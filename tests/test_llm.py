from unittest.mock import MagicMock, patch

import pytest
from litellm.exceptions import AuthenticationError, Timeout

from api_test_orchestrator.errors import FatalConfigurationError, TransientGenerationError
from api_test_orchestrator.llm import LlmClient


def _response(content):
    mock_resp = MagicMock()
    mock_resp.choices = [MagicMock()]
    mock_resp.choices[0].message.content = content
    return mock_resp


class TestLlmClient:
    def test_default_model(self):
        client = LlmClient()
        assert client.model is not None

    def test_custom_model(self):
        client = LlmClient(model="gpt-4o")
        assert client.model == "gpt-4o"

    @patch("api_test_orchestrator.llm.completion")
    def test_call_returns_content(self, mock_completion):
        mock_completion.return_value = _response("test response")

        client = LlmClient(model="gpt-4o")
        result = client.call(system="You are helpful.", user="Hello")
        assert result == "test response"
        mock_completion.assert_called_once()

    @patch("api_test_orchestrator.llm.completion")
    def test_call_passes_model_messages_and_limits(self, mock_completion):
        mock_completion.return_value = _response("ok")

        client = LlmClient(model="claude-sonnet-4-20250514", timeout_ms=2500, max_tokens=100, temperature=0.0)
        client.call(system="sys", user="usr")

        call_kwargs = mock_completion.call_args[1]
        assert call_kwargs["model"] == "claude-sonnet-4-20250514"
        assert call_kwargs["timeout"] == 2.5
        assert call_kwargs["max_tokens"] == 100
        assert call_kwargs["temperature"] == 0.0
        messages = call_kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "sys"}
        assert messages[1] == {"role": "user", "content": "usr"}

    @patch("api_test_orchestrator.llm.completion")
    def test_none_content_is_empty_string(self, mock_completion):
        mock_completion.return_value = _response(None)
        assert LlmClient().call("s", "u") == ""


class TestErrorMapping:
    @patch("api_test_orchestrator.llm.completion")
    def test_timeout_is_transient(self, mock_completion):
        mock_completion.side_effect = Timeout(message="slow", model="gpt-4o", llm_provider="openai")
        with pytest.raises(TransientGenerationError, match="no response within 1000ms"):
            LlmClient(model="gpt-4o", timeout_ms=1000).call("s", "u")

    @patch("api_test_orchestrator.llm.completion")
    def test_authentication_is_fatal(self, mock_completion):
        mock_completion.side_effect = AuthenticationError(
            message="bad key", llm_provider="openai", model="gpt-4o"
        )
        with pytest.raises(FatalConfigurationError):
            LlmClient(model="gpt-4o").call("s", "u")

    @patch("api_test_orchestrator.llm.completion")
    def test_other_errors_are_transient(self, mock_completion):
        mock_completion.side_effect = ConnectionError("reset by peer")
        with pytest.raises(TransientGenerationError, match="reset by peer"):
            LlmClient().call("s", "u")
