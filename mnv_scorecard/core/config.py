# mnv_scorecard/core/config.py
import os
from typing import Optional

from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()


class Settings:
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "anthropic").lower()

    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")

    AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "")
    AZURE_OPENAI_API_KEY: str = os.getenv("AZURE_OPENAI_API_KEY", "")
    AZURE_OPENAI_DEPLOYMENT: str = os.getenv("AZURE_OPENAI_DEPLOYMENT", "")
    AZURE_OPENAI_API_VERSION: str = os.getenv("AZURE_OPENAI_API_VERSION", "2025-04-01-preview")

    COMPLIANCE_MAX_TOKENS: int = int(os.getenv("COMPLIANCE_MAX_TOKENS", "4000"))
    ANALYZE_MAX_TOKENS: int = int(os.getenv("ANALYZE_MAX_TOKENS", "1000"))
    MAX_INPUT_LENGTH: int = int(os.getenv("MAX_INPUT_LENGTH", "15000"))

    RUBRIC_VERSION: str = os.getenv("RUBRIC_VERSION", "v1")
    FETCH_MAX_CHARS: int = int(os.getenv("FETCH_MAX_CHARS", "8000"))

    def missing_credential(self) -> Optional[str]:
        """Name of the first unset credential for the active provider, if any."""
        if self.LLM_PROVIDER == "azure":
            required = ("AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_DEPLOYMENT")
        else:
            required = ("ANTHROPIC_API_KEY",)
        for name in required:
            if not getattr(self, name):
                return name
        return None


settings = Settings()
