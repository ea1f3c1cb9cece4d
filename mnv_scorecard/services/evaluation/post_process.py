from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from mnv_scorecard.models.rubric import RubricStore
from mnv_scorecard.services.evaluation.scoring import rescore_evaluation

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```json|```")


def extract_text(envelope: Dict[str, Any]) -> str:
    """Join the text blocks of a Messages-shaped provider envelope."""
    blocks = envelope.get("content")
    if not isinstance(blocks, list):
        return ""
    return "".join(
        block.get("text") or "" for block in blocks if isinstance(block, dict)
    )


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not valid JSON
    raise ValueError(f"non-standard constant {name}")


def parse_model_json(text: str) -> Optional[Dict[str, Any]]:
    """Parse model text as a JSON object; None when it is not one."""
    try:
        parsed = json.loads(strip_code_fences(text), parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        logger.warning(f"Model output is not valid JSON ({e}); returning it unscored")
        return None
    if not isinstance(parsed, dict):
        logger.warning(f"Model output parsed to {type(parsed).__name__}, not an object; returning it unscored")
        return None
    return parsed


def finalize_envelope(envelope: Dict[str, Any], store: RubricStore) -> Dict[str, Any]:
    """Score the evaluation carried in a provider envelope.

    On success the envelope's content becomes a single text block holding the
    corrected JSON. When the model text cannot be parsed the envelope is
    returned untouched.
    """
    parsed = parse_model_json(extract_text(envelope))
    if parsed is None:
        return envelope

    scored = rescore_evaluation(parsed, store)
    envelope["content"] = [{"type": "text", "text": json.dumps(scored, ensure_ascii=False)}]
    return envelope
