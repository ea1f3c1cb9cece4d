from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from mnv_scorecard.models.rubric import CriterionStatus, ElementStatus, RubricStore

logger = logging.getLogger(__name__)


# Fraction of a criterion's weight awarded per status; anything else earns nothing.
CRITERION_STATUS_MULTIPLIER: Mapping[CriterionStatus, float] = {
    "met": 1.0,
    "partial": 0.5,
    "not_met": 0.0,
}

# Points per structural element status; anything else earns nothing.
ELEMENT_STATUS_POINTS: Mapping[ElementStatus, int] = {
    "present": 2,
    "partial": 1,
    "missing": 0,
}


def round_half_up(value: float) -> int:
    """Round .5 up, as the browser client does (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _number(value: float) -> int | float:
    # Keep integral values as ints so they serialise as 25 rather than 25.0
    return int(value) if float(value).is_integer() else value


def _lookup(table: Mapping[str, Any], status: Any, default: Any) -> Any:
    if not isinstance(status, str):
        return default
    return table.get(status, default)


def criterion_multiplier(status: Any) -> float:
    return _lookup(CRITERION_STATUS_MULTIPLIER, status, 0.0)


def element_points(status: Any) -> int:
    return _lookup(ELEMENT_STATUS_POINTS, status, 0)


def _score_principles(section: Dict[str, Any], store: RubricStore) -> None:
    principles = section.get("principles")
    if not isinstance(principles, dict):
        return

    scored: List[float] = []
    for principle_id, principle_result in principles.items():
        principle = store.principles.principles.get(principle_id)
        if principle is None or not isinstance(principle_result, dict):
            logger.debug(f"Ignoring unscorable principle '{principle_id}'")
            continue

        criteria_results = principle_result.get("criteria")
        if not isinstance(criteria_results, dict):
            criteria_results = {}

        total = 0.0
        for criterion_id, criterion_result in criteria_results.items():
            criterion = principle.criteria.get(criterion_id)
            if criterion is None or not isinstance(criterion_result, dict):
                logger.debug(f"Ignoring unscorable criterion '{principle_id}.{criterion_id}'")
                continue
            score = criterion.weight * criterion_multiplier(criterion_result.get("status"))
            criterion_result["score"] = _number(score)
            criterion_result["max_score"] = _number(criterion.weight)
            total += score

        principle_result["score"] = _number(total)
        scored.append(total)

    if scored:
        section["composite_score"] = round_half_up(sum(scored) / len(scored))
    else:
        section.pop("composite_score", None)


def _score_elements(section: Dict[str, Any], store: RubricStore) -> None:
    checklist = store.checklist
    elements = section.get("elements")
    if not isinstance(elements, dict):
        elements = {}

    structural_index = 0
    for element_id, element_result in elements.items():
        if element_id not in checklist.elements or not isinstance(element_result, dict):
            logger.debug(f"Ignoring unscorable element '{element_id}'")
            continue
        points = element_points(element_result.get("status"))
        element_result["score"] = points
        structural_index += points

    max_possible = checklist.scoring.max_possible
    section["structural_index"] = structural_index
    section["max_possible"] = _number(max_possible)
    section["percentage"] = round_half_up(structural_index / max_possible * 100)


def rescore_evaluation(payload: Dict[str, Any], store: RubricStore) -> Dict[str, Any]:
    """Recompute every numeric field of a parsed model evaluation, in place.

    Only the categorical statuses from the model are used; any score, max_score,
    composite_score, structural_index, max_possible or percentage it supplied is
    overwritten. Unknown ids and unknown statuses never raise. Principles and
    elements the model left out are skipped rather than counted as zero.

    Running this twice on the same payload gives the same numbers.
    """
    if not isinstance(payload, dict):
        return payload

    adherence: Optional[Any] = payload.get("principle_adherence")
    if isinstance(adherence, dict):
        _score_principles(adherence, store)

    completeness: Optional[Any] = payload.get("plan_completeness")
    if isinstance(completeness, dict):
        _score_elements(completeness, store)

    return payload
