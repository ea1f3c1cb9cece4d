import asyncio
import logging
from typing import Any, Dict, Optional

import anthropic

from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import LLMConnectionException, UpstreamStatusException

logger = logging.getLogger(__name__)


class AnthropicMessagesLLM:
    """Single-shot Messages API call; the response envelope is returned as a dict."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        # One attempt per request: provider errors go straight back to the caller
        self.client = anthropic.Anthropic(api_key=api_key or settings.ANTHROPIC_API_KEY, max_retries=0)
        self.model = model or settings.ANTHROPIC_MODEL

    async def create_message(
        self, *, system: str, content: str, max_tokens: int, name: Optional[str] = None,
    ) -> Dict[str, Any]:

        def _invoke_sync() -> Dict[str, Any]:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": content}],
            )
            return message.model_dump(mode="json")

        try:
            return await asyncio.to_thread(_invoke_sync)
        except anthropic.APIStatusError as e:
            body = e.body if e.body is not None else {"error": e.message}
            logger.warning(f"[{name}] Anthropic returned {e.status_code}")
            raise UpstreamStatusException(e.status_code, body) from e
        except anthropic.APIConnectionError as e:
            raise LLMConnectionException(f"Anthropic request failed: {e}", details={"call": name}) from e
