# mnv_scorecard/utils/tracer.py
import logging
import os
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from langfuse import Langfuse

logger = logging.getLogger(__name__)

public_key = os.getenv("LANGFUSE_PUBLIC_KEY")
secret_key = os.getenv("LANGFUSE_SECRET_KEY")
host = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

LANGFUSE_AVAILABLE = bool(public_key and secret_key)

lf: Optional[Langfuse] = None

if LANGFUSE_AVAILABLE:
    try:
        lf = Langfuse(public_key=public_key, secret_key=secret_key, host=host, release="v1.0.0")
        logger.info(f"Langfuse initialized. Host: {host}")
    except Exception as e:
        logger.warning(f"Langfuse initialization failed: {e}. Tracing disabled.")
        LANGFUSE_AVAILABLE = False
else:
    logger.info("Langfuse credentials not set. Tracing disabled.")


@runtime_checkable
class LLM(Protocol):
    model: Optional[str]

    async def create_message(
        self, *, system: str, content: str, max_tokens: int, name: Optional[str] = None,
    ) -> Dict[str, Any]: ...


class ObservedLLM:
    """Records one Langfuse generation per call when tracing is configured."""

    def __init__(self, inner: LLM, service: str = "anthropic"):
        self.inner = inner
        self.service = service

    @property
    def model(self) -> Optional[str]:
        return getattr(self.inner, "model", None)

    async def create_message(
        self, *, system: str, content: str, max_tokens: int, name: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not (LANGFUSE_AVAILABLE and lf):
            return await self.inner.create_message(
                system=system, content=content, max_tokens=max_tokens, name=name,
            )

        # UI에서 "Type: Generation" + "Name: llm.compliance" 로 필터
        with lf.start_as_current_generation(name=f"llm.{name or 'message'}", model=self.model or self.service) as gen:
            gen.update(
                input={"system_chars": len(system), "content": content},
                metadata={"service": self.service, "max_tokens": max_tokens},
            )
            try:
                result = await self.inner.create_message(
                    system=system, content=content, max_tokens=max_tokens, name=name,
                )
                usage = result.get("usage") or {}
                gen.update(
                    output=result.get("content"),
                    usage_details={
                        "input": usage.get("input_tokens", 0),
                        "output": usage.get("output_tokens", 0),
                    },
                )
                return result
            except Exception as e:
                gen.update(level="ERROR", status_message=str(e))
                raise
            finally:
                try:
                    lf.flush()
                except Exception as e:
                    logger.debug(f"Langfuse flush failed: {e}")
