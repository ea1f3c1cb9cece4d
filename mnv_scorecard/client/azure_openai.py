import asyncio
import logging
from typing import Any, Dict, Optional

import openai
from openai import AzureOpenAI

from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import LLMConnectionException, UpstreamStatusException

logger = logging.getLogger(__name__)


class AzureOpenAILLM:
    """Azure chat completions behind the same Messages-shaped envelope as the Anthropic client."""

    def __init__(self):
        self.client = AzureOpenAI(
            api_key=settings.AZURE_OPENAI_API_KEY,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            max_retries=0,
        )
        self.deployment = settings.AZURE_OPENAI_DEPLOYMENT
        self.model = self.deployment

    @staticmethod
    def to_envelope(resp: Any) -> Dict[str, Any]:
        """Map a chat completion onto {content: [{type: "text", text}], usage, ...}."""
        choice = resp.choices[0] if resp.choices else None
        text = (choice.message.content if choice else None) or ""
        if not text:
            logger.warning(f"Empty content received from Azure OpenAI (id={getattr(resp, 'id', None)})")
        return {
            "id": resp.id,
            "type": "message",
            "role": "assistant",
            "model": resp.model,
            "content": [{"type": "text", "text": text}],
            "stop_reason": choice.finish_reason if choice else None,
            "usage": {
                "input_tokens": resp.usage.prompt_tokens if resp.usage else 0,
                "output_tokens": resp.usage.completion_tokens if resp.usage else 0,
            },
        }

    async def create_message(
        self, *, system: str, content: str, max_tokens: int, name: Optional[str] = None,
    ) -> Dict[str, Any]:

        def _invoke_sync() -> Dict[str, Any]:
            resp = self.client.chat.completions.create(
                model=self.deployment,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": content},
                ],
                max_completion_tokens=max_tokens,
            )
            return self.to_envelope(resp)

        try:
            return await asyncio.to_thread(_invoke_sync)
        except openai.APIStatusError as e:
            body = e.body if e.body is not None else {"error": e.message}
            logger.warning(f"[{name}] Azure OpenAI returned {e.status_code}")
            raise UpstreamStatusException(e.status_code, body) from e
        except openai.APIConnectionError as e:
            raise LLMConnectionException(f"Azure OpenAI request failed: {e}", details={"call": name}) from e
