import logging
import os
import time
from collections.abc import AsyncIterator
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from mnv_scorecard.client.bootstrap import build_llm
from mnv_scorecard.models.request import FetchUrlRequest, PlanEvalRequest
from mnv_scorecard.services.plan_evaluator import PlanEvaluator
from mnv_scorecard.services.url_fetcher import fetch_url_text
from mnv_scorecard.utils.tracer import LLM

logger = logging.getLogger(__name__)


async def route_timer(request: Request) -> AsyncIterator[None]:
    start = time.perf_counter()
    method = request.method
    path = request.url.path
    request_id = f"req_{int(time.time() * 1000)}"
    request.state.request_id = request_id

    logger.info(f"[{request_id}] → {method} {path}")
    try:
        yield
    finally:
        dur_ms = (time.perf_counter() - start) * 1000.0
        slow_ms = float(os.getenv("SLOW_REQUEST_MS", "2000"))
        slow_tag = " SLOW" if dur_ms > slow_ms else ""
        logger.info(f"[{request_id}] ← {method} {path} {dur_ms:.1f}ms{slow_tag}")


router = APIRouter(dependencies=[Depends(route_timer)])


def get_llm() -> LLM:
    """Provider client; raises ConfigurationException when its credential is unset."""
    return build_llm()


def get_evaluator(llm: LLM = Depends(get_llm)) -> PlanEvaluator:
    return PlanEvaluator(llm)


@router.post("/compliance")
async def compliance(
    req: PlanEvalRequest,
    evaluator: PlanEvaluator = Depends(get_evaluator),
) -> Dict[str, Any]:
    """Rubric evaluation with server-side score recomputation."""
    return await evaluator.evaluate_compliance(req.content)


@router.post("/analyze")
async def analyze(
    req: PlanEvalRequest,
    evaluator: PlanEvaluator = Depends(get_evaluator),
) -> Dict[str, Any]:
    return await evaluator.characterize(req.content)


@router.post("/fetch-url")
async def fetch_url(req: FetchUrlRequest) -> Dict[str, str]:
    return await fetch_url_text(req.url)
