from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Callable, Dict

from mnv_scorecard.core.config import settings
from mnv_scorecard.models.rubric import RubricStore
from mnv_scorecard.services.evaluation.post_process import finalize_envelope
from mnv_scorecard.services.evaluation.pre_process import validate_content
from mnv_scorecard.services.evaluation.prompt_builder import CHARACTERIZATION_PROMPT, get_system_prompt
from mnv_scorecard.utils.rubric_loader import get_rubric_store
from mnv_scorecard.utils.tracer import LLM

logger = logging.getLogger(__name__)


class PlanEvaluator:
    """Top-level orchestration for one M&V plan request.

    Flow (compliance):
      validate → LLM(cached rubric prompt) → strip fences/parse → rescore
    """

    def __init__(
        self,
        llm: LLM,
        store: RubricStore | None = None,
        prompt_factory: Callable[[], str] = get_system_prompt,
    ):
        self.llm = llm
        self.store = store or get_rubric_store()
        self.prompt_factory = prompt_factory

    async def evaluate_compliance(self, content: Any) -> Dict[str, Any]:
        text = validate_content(content)
        system = self.prompt_factory()

        t0 = perf_counter()
        envelope = await self.llm.create_message(
            system=system,
            content=text,
            max_tokens=settings.COMPLIANCE_MAX_TOKENS,
            name="compliance",
        )
        logger.info(f"LLM execution time for compliance: {(perf_counter() - t0):.3f} seconds")

        return finalize_envelope(envelope, self.store)

    async def characterize(self, content: Any) -> Dict[str, Any]:
        """Eight-dimension description of the M&V approach; returned as the provider sent it."""
        text = validate_content(content)

        t0 = perf_counter()
        envelope = await self.llm.create_message(
            system=CHARACTERIZATION_PROMPT,
            content=text,
            max_tokens=settings.ANALYZE_MAX_TOKENS,
            name="analyze",
        )
        logger.info(f"LLM execution time for analyze: {(perf_counter() - t0):.3f} seconds")
        return envelope
