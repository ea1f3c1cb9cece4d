from __future__ import annotations

from typing import Any

from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import ValidationException


def validate_content(content: Any, max_length: int | None = None) -> str:
    """Check submitted plan text and return it trimmed.

    The length ceiling applies to the text as submitted, before trimming.
    """
    limit = settings.MAX_INPUT_LENGTH if max_length is None else max_length
    if not content or not isinstance(content, str) or not content.strip():
        raise ValidationException("Content is required", field="content")
    if len(content) > limit:
        raise ValidationException(
            "Input too long. Please shorten your text.",
            field="content",
            details={"max_length": limit, "length": len(content)},
        )
    return content.strip()
