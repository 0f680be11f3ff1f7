"""LLM client wrapper around litellm.

Provides a unified interface for calling any LLM model supported by litellm,
and translates provider failures into the orchestrator's error taxonomy.
"""

import logging

from litellm import completion
from litellm.exceptions import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    Timeout,
)

from api_test_orchestrator.config import DEFAULT_MODEL
from api_test_orchestrator.errors import FatalConfigurationError, TransientGenerationError

logger = logging.getLogger(__name__)


class LlmClient:
    """Wrapper for LLM API calls via litellm."""

    def __init__(
        self,
        model: str | None = None,
        timeout_ms: int = 60_000,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ):
        self.model = model or DEFAULT_MODEL
        self.timeout_ms = timeout_ms
        self.max_tokens = max_tokens
        self.temperature = temperature

    def call(self, system: str, user: str) -> str:
        """Send a system+user message to the LLM and return the response text."""
        try:
            response = completion(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                timeout=self.timeout_ms / 1000,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except (AuthenticationError, PermissionDeniedError, NotFoundError) as e:
            raise FatalConfigurationError(f"{self.model}: {e}") from e
        except Timeout as e:
            raise TransientGenerationError(
                f"{self.model}: no response within {self.timeout_ms}ms"
            ) from e
        except Exception as e:
            logger.debug("LLM call failed: %r", e)
            raise TransientGenerationError(f"{self.model}: {e}") from e

        return response.choices[0].message.content or ""
