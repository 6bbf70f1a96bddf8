"""Text-to-JSON structuring through an OpenAI-compatible chat endpoint."""

import json
from typing import Optional, Type, TypeVar

import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from flowdesk.config import get_settings

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class LLMError(Exception):
    """The provider failed, returned nothing, or returned an unusable shape."""


class LLMService:
    """Turns free text into a validated pydantic model."""

    def __init__(self):
        self.settings = get_settings()
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-load the chat client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.llm_api_key,
                base_url=self.settings.llm_base_url,
                timeout=self.settings.llm_timeout_seconds,
            )
        return self._client

    async def generate_json(
        self,
        system_prompt: str,
        user_input: str,
        model_cls: Type[ModelT],
    ) -> ModelT:
        """Ask the model for a JSON object and validate it against ``model_cls``.

        Raises:
            LLMError: on provider errors, empty output, invalid JSON or a
                response that does not match ``model_cls``
        """
        try:
            completion = await self.client.chat.completions.create(
                model=self.settings.llm_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_input},
                ],
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error("llm_request_failed", error=str(e), error_type=type(e).__name__)
            raise LLMError(f"Provider error: {e}") from e

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""
        if not text:
            raise LLMError("Provider returned an empty response")

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise LLMError(f"Provider returned invalid JSON: {e.msg}") from e

        try:
            result = model_cls.model_validate(parsed)
        except ValidationError as e:
            logger.warning("llm_response_invalid", model=model_cls.__name__, errors=e.error_count())
            raise LLMError(f"Response validation failed: {e.errors()[0]['msg']}") from e

        logger.debug("llm_response_validated", model=model_cls.__name__)
        return result
