"""Render the rubric store into the system prompt for compliance evaluation.

The JSON response template is generated from the same rubric and checklist
mappings that the scoring step walks, so the keys the model is asked to fill
in always match the keys that get scored.
"""
from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Dict

from mnv_scorecard.models.rubric import PlanChecklist, PrinciplesRubric, RubricStore
from mnv_scorecard.utils.rubric_loader import get_rubric_store, validate_rubric_store

SCHEMA_VERSION = "2.0"


def _num(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def build_principles_section(rubric: PrinciplesRubric) -> str:
    lines = [
        "## AXIS 1: M&V Quality Principles",
        "",
        f"Evaluate the M&V plan against these {len(rubric.principles)} principles. "
        "Each principle has weighted criteria.",
        'For each criterion, assign a status: "met", "partial", or "not_met".',
        "Score = status weight × criterion weight (met=1.0, partial=0.5, not_met=0.0).",
        "For partial status, the score is EXACTLY weight × 0.5. For example, a criterion with "
        'weight 25 and status "partial" scores exactly 12.5.',
        "The principle score = sum of (status_weight × criterion_weight) for all criteria in that principle.",
        "Do not independently estimate principle or composite scores — they will be recomputed server-side.",
        "",
    ]
    for principle in rubric.principles.values():
        lines.append(f"### {principle.name}")
        lines.append(principle.description)
        lines.append("")
        lines.append("| ID | Criterion | Weight | Met | Partial | Not Met |")
        lines.append("|---|---|---|---|---|---|")
        for criterion_id, c in principle.criteria.items():
            lines.append(
                f"| {criterion_id} | {c.name} | {_num(c.weight)} | {c.met} | {c.partial} | {c.not_met} |"
            )
        lines.append("")
    return "\n".join(lines) + "\n"


def build_checklist_section(checklist: PlanChecklist) -> str:
    max_possible = _num(checklist.scoring.max_possible)
    lines = [
        "## AXIS 2: Plan Structural Completeness",
        "",
        f"Evaluate whether the M&V plan contains these {len(checklist.elements)} structural elements.",
        'For each element, assign: "present" (2 points), "partial" (1 point), or "missing" (0 points).',
        f"structural_index = sum of all element scores. max_possible = {max_possible}.",
        "percentage = round(structural_index / max_possible × 100).",
        "",
        "| Element | What to look for | Present | Partial | Missing |",
        "|---|---|---|---|---|",
    ]
    for element in checklist.elements.values():
        lines.append(
            f"| {element.name} | {element.look_for} | {element.present} | {element.partial} | {element.missing} |"
        )
    lines.append("")
    return "\n".join(lines) + "\n"


def build_response_template(rubric: PrinciplesRubric, checklist: PlanChecklist) -> Dict[str, Any]:
    principles: Dict[str, Any] = {}
    for principle_id, principle in rubric.principles.items():
        criteria = {
            criterion_id: {
                "score": "<number: status_weight × criterion_weight>",
                "max_score": "<number: criterion weight>",
                "status": "<met|partial|not_met>",
                "evidence": "<string: quote or cite specific text from the plan>",
                "gap": "<string|null: what is missing, null if met>",
            }
            for criterion_id in principle.criteria
        }
        principles[principle_id] = {
            "score": "<number: sum of criteria scores, 0-100>",
            "criteria": criteria,
        }

    elements = {
        element_id: {
            "score": "<number: 0, 1, or 2>",
            "status": "<present|partial|missing>",
            "evidence": "<string: quote or cite specific text from the plan>",
            "section_ref": "<string|null: section reference if identifiable>",
        }
        for element_id in checklist.elements
    }

    return {
        "schema_version": SCHEMA_VERSION,
        "subject": "<string: name/title of the M&V plan being evaluated>",
        "summary": "<string: 2-3 sentence plain-language summary of the evaluation>",
        "principle_adherence": {
            "composite_score": f"<number: average of {len(rubric.principles)} principle scores, 0-100>",
            "principles": principles,
        },
        "plan_completeness": {
            "structural_index": "<number: sum of element scores>",
            "max_possible": _num(checklist.scoring.max_possible),
            "percentage": "<number: structural_index / max_possible × 100>",
            "elements": elements,
        },
    }


def build_system_prompt(store: RubricStore) -> str:
    """Build the compliance system prompt for a validated rubric store.

    Raises MalformedRubric when the store cannot be scored against.
    """
    validate_rubric_store(store)
    rubric, checklist = store.principles, store.checklist
    n_principles = len(rubric.principles)

    prompt = (
        "You are an expert evaluator of Measurement & Verification (M&V) plans for energy efficiency "
        "and demand-side management programs.\n"
        "\n"
        "You will evaluate an M&V plan across two axes:\n"
        f"1. **M&V Quality Principles** — adherence to {n_principles} universal quality principles "
        f"({rubric.criteria_count} criteria total)\n"
        f"2. **Plan Structural Completeness** — presence of {len(checklist.elements)} essential plan elements\n"
        "\n"
        "Your evaluation must be protocol-neutral. These are best practices for any rigorous M&V plan, "
        "not specific to any single standard or protocol.\n"
        "\n"
        "IMPORTANT INSTRUCTIONS:\n"
        "- Evaluate ONLY what is present in the submitted text. Do not assume content that is not stated.\n"
        "- Cite specific evidence from the plan text for each criterion and element.\n"
        "- When text is ambiguous, score conservatively (partial rather than met).\n"
        "- If the text is not an M&V plan, still evaluate it against these criteria — many M&V-adjacent "
        "documents contain relevant content.\n"
        "\n"
    )
    prompt += build_principles_section(rubric)
    prompt += build_checklist_section(checklist)
    prompt += (
        "## RESPONSE FORMAT\n"
        "\n"
        "Return ONLY valid JSON, no markdown, no explanation. Use this exact structure:\n"
        "\n"
        f"{json.dumps(build_response_template(rubric, checklist), indent=2, ensure_ascii=False)}\n"
        "\n"
        "CRITICAL: All numeric scores must be actual numbers, not strings. The composite_score must be "
        f"the arithmetic mean of the {n_principles} principle scores, rounded to the nearest integer."
    )
    return prompt


@lru_cache()
def get_system_prompt() -> str:
    """Compliance prompt for the process-wide rubric store, built on first use."""
    return build_system_prompt(get_rubric_store())


CHARACTERIZATION_PROMPT = """You are an expert in Measurement & Verification (M&V) methodology for energy efficiency and demand-side management programs.

When given an M&V plan, methodology description, or vendor capability statement, you will analyze it across 8 dimensions:

1. measurement_method: What measurement approach is used (utility bill analysis, submetering, simulation, etc.)
2. boundary_scope: What is the measurement boundary (whole facility, system-level, end-use, component)
3. duration_cadence: How long and how frequently measurements occur (snapshot, short-term <30 days, long-term, continuous)
4. use_case_fit: What this M&V approach is best suited for (demand response, EE program verification, performance contract, carbon accounting, etc.)
5. savings_isolation: Ability to attribute savings to a specific measure vs. confounded by other factors
6. interactive_effects: Whether the method captures interactive effects like HVAC-lighting interactions
7. baseline_robustness: Quality and approach of baseline construction (normalized, TMY-adjusted, rolling, static snapshot)
8. uncertainty_quantification: Whether uncertainty or error is quantified (quantified with CI, acknowledged, not addressed)

For each dimension return:
- label: short 2-4 word label for what was found
- detail: 1-2 sentence explanation of what the plan says or implies
- flag: one of "sufficient", "limited", or "not_addressed"
- inference: one key implication or limitation this creates (what can or can't be done as a result)

Also return:
- subject: name/title of the M&V approach being evaluated
- summary: 2-3 sentence plain-language summary of what this M&V is and what it's designed to do
- use_case_match: the single best-fit use case label

Return ONLY valid JSON, no markdown, no explanation. Use this exact structure:
{
  "subject": "...",
  "summary": "...",
  "use_case_match": "...",
  "dimensions": {
    "measurement_method": { "label": "...", "detail": "...", "flag": "...", "inference": "..." },
    "boundary_scope": { "label": "...", "detail": "...", "flag": "...", "inference": "..." },
    "duration_cadence": { "label": "...", "detail": "...", "flag": "...", "inference": "..." },
    "use_case_fit": { "label": "...", "detail": "...", "flag": "...", "inference": "..." },
    "savings_isolation": { "label": "...", "detail": "...", "flag": "...", "inference": "..." },
    "interactive_effects": { "label": "...", "detail": "...", "flag": "...", "inference": "..." },
    "baseline_robustness": { "label": "...", "detail": "...", "flag": "...", "inference": "..." },
    "uncertainty_quantification": { "label": "...", "detail": "...", "flag": "...", "inference": "..." }
  }
}"""
