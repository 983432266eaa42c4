"""
Hosted language-model client used for eligibility checks and support answers.
"""

import json
from typing import Optional

import structlog
from openai import AsyncOpenAI, OpenAIError

from app.integrations.base import IntegrationError, IntegrationNotConfigured, instrumented

logger = structlog.get_logger(__name__)

PROVIDER = "openai"


class ReasoningClient:
    """Thin wrapper around the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o",
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        if client is not None:
            self._client: Optional[AsyncOpenAI] = client
        elif api_key:
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        else:
            self._client = None

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def _complete(self, operation: str, system: str, user: str, json_mode: bool) -> str:
        if self._client is None:
            raise IntegrationNotConfigured(PROVIDER, operation)

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        async with instrumented(PROVIDER, operation):
            try:
                response = await self._client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    **kwargs,
                )
            except OpenAIError as e:
                raise IntegrationError(PROVIDER, operation, str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise IntegrationError(PROVIDER, operation, "empty completion")
        return content

    async def complete_text(self, system: str, user: str, operation: str = "complete_text") -> str:
        return await self._complete(operation, system, user, json_mode=False)

    async def complete_json(self, system: str, user: str, operation: str = "complete_json") -> dict:
        """Request a JSON object response and decode it."""
        content = await self._complete(operation, system, user, json_mode=True)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise IntegrationError(PROVIDER, operation, f"malformed JSON: {e}") from e
        if not isinstance(data, dict):
            raise IntegrationError(PROVIDER, operation, "expected a JSON object")
        return data
