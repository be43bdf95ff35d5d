from typing import List, Optional

import httpx

from app.errors import ExternalServiceError, is_transient_status
from app.logging_config import get_logger
from app.services.deadline import Deadline, clamp_timeout
from app.services.llm.base import LLMProvider, LLMResponse
from app.services.retry import call_with_retry

logger = get_logger("llm.openai")

HOP = "openai.chat_completions"


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions over httpx."""

    def __init__(self, api_key: str, default_model: str = "gpt-4.1-nano", timeout_seconds: float = 60.0):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds
        self.base_url = "https://api.openai.com/v1/chat/completions"

    def _post(self, payload: dict, deadline: Optional[Deadline]) -> dict:
        timeout = clamp_timeout(self.timeout_seconds, deadline, HOP)
        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(
                    self.base_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise ExternalServiceError(HOP, f"timed out: {e}", transient=True) from e
        except httpx.TransportError as e:
            raise ExternalServiceError(HOP, f"transport error: {e}", transient=True) from e

        logger.debug(f"OpenAI response status: {response.status_code}")

        if response.status_code != 200:
            logger.error(f"OpenAI error: {response.text[:500]}")
            raise ExternalServiceError(
                HOP,
                f"OpenAI API error: {response.status_code}",
                upstream_status=response.status_code,
                body=response.text,
                transient=is_transient_status(response.status_code),
            )
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(HOP, f"invalid JSON response: {e}", body=response.text) from e

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        payload = {"model": model, "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_completion_tokens"] = max_tokens

        logger.debug(f"OpenAI request: model={model}, messages_count={len(messages)}")
        data = call_with_retry(self._post, payload, deadline, deadline=deadline)

        if not isinstance(data, dict):
            raise ExternalServiceError(HOP, f"unexpected response body: {type(data).__name__}")
        choices = data.get("choices") or []
        if not isinstance(choices, list) or not choices:
            raise ExternalServiceError(HOP, "no response from OpenAI")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise ExternalServiceError(HOP, "malformed choice in OpenAI response")
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise ExternalServiceError(HOP, "malformed choice in OpenAI response")
        logger.debug(f"OpenAI content: {content[:100] if content else 'EMPTY'}")
        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
        )
