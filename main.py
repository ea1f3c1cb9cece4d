import logging
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()  # ★ 라우터/모듈 임포트 전에!

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mnv_scorecard.api.v1.evaluation import router as eval_router
from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import (
    EvaluationException,
    LLMConnectionException,
    UpstreamStatusException,
    evaluation_exception_handler,
    http_exception_handler,
    llm_connection_exception_handler,
    request_validation_exception_handler,
    upstream_status_exception_handler,
)
from mnv_scorecard.services.evaluation.prompt_builder import get_system_prompt

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the rubric prompt up front so a broken rubric fails at startup."""
    startup_time = time.time()
    logger.info("Starting M&V scorecard API...")

    prompt = get_system_prompt()
    logger.info(
        f"Rubric {settings.RUBRIC_VERSION} prompt ready ({len(prompt)} chars) "
        f"in {(time.time() - startup_time) * 1000:.1f}ms"
    )

    missing = settings.missing_credential()
    if missing:
        logger.warning(f"{missing} is not set; evaluation requests will fail until it is configured")

    yield

    logger.info("Shutting down M&V scorecard API")


def create_app() -> FastAPI:
    app = FastAPI(
        title="M&V Plan Scorecard API",
        version="1.0.0",
        description="Scores Measurement & Verification plans against a weighted principles rubric "
                    "and a structural completeness checklist",
        lifespan=lifespan,
    )

    app.add_exception_handler(EvaluationException, evaluation_exception_handler)
    app.add_exception_handler(LLMConnectionException, llm_connection_exception_handler)
    app.add_exception_handler(UpstreamStatusException, upstream_status_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # CORS (open by default; tighten as needed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(eval_router, prefix="/api", tags=["evaluation"])

    @app.get("/health")
    async def health():
        health_status = {
            "status": "healthy",
            "version": "1.0.0",
            "rubric_version": settings.RUBRIC_VERSION,
            "provider": settings.LLM_PROVIDER,
            "timestamp": time.time(),
            "services": {},
        }

        try:
            health_status["services"]["rubric"] = "operational" if get_system_prompt() else "degraded"
        except EvaluationException as e:
            logger.warning(f"Rubric check failed: {e.message}")
            health_status["services"]["rubric"] = "unavailable"
            health_status["status"] = "degraded"

        missing = settings.missing_credential()
        health_status["services"]["llm"] = "configured" if not missing else f"{missing} not configured"
        if missing:
            health_status["status"] = "degraded"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(status_code=status_code, content=health_status)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
