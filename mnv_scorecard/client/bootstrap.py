# mnv_scorecard/client/bootstrap.py
from typing import Optional

from mnv_scorecard.client.anthropic_messages import AnthropicMessagesLLM
from mnv_scorecard.client.azure_openai import AzureOpenAILLM
from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import ConfigurationException
from mnv_scorecard.utils.tracer import LLM, ObservedLLM

_llm_singleton: Optional[LLM] = None


def build_llm() -> LLM:
    global _llm_singleton
    missing = settings.missing_credential()
    if missing:
        raise ConfigurationException(f"{missing} not configured")
    if _llm_singleton is None:
        if settings.LLM_PROVIDER == "azure":
            _llm_singleton = ObservedLLM(AzureOpenAILLM(), service="azure-openai")
        else:
            _llm_singleton = ObservedLLM(AnthropicMessagesLLM(), service="anthropic")
    return _llm_singleton
