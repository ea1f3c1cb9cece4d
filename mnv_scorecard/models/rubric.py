# mnv_scorecard/models/rubric.py
from typing import Dict, Literal

from pydantic import BaseModel, Field

CriterionStatus = Literal["met", "partial", "not_met"]
ElementStatus = Literal["present", "partial", "missing"]


class Criterion(BaseModel):
    name: str
    weight: float = Field(gt=0, description="Maximum points awardable for this criterion")
    met: str
    partial: str
    not_met: str


class Principle(BaseModel):
    name: str
    description: str
    criteria: Dict[str, Criterion]

    @property
    def total_weight(self) -> float:
        return sum(c.weight for c in self.criteria.values())


class PrinciplesRubric(BaseModel):
    """Principles axis: principle_id → weighted criteria."""
    version: str = "1.0"
    principles: Dict[str, Principle]

    @property
    def criteria_count(self) -> int:
        return sum(len(p.criteria) for p in self.principles.values())


class ChecklistElement(BaseModel):
    name: str
    look_for: str
    present: str = Field(min_length=1)
    partial: str = Field(min_length=1)
    missing: str = Field(min_length=1)


class ChecklistScoring(BaseModel):
    max_possible: float


class PlanChecklist(BaseModel):
    """Structural axis: element_id → present/partial/missing descriptions."""
    version: str = "1.0"
    scoring: ChecklistScoring
    elements: Dict[str, ChecklistElement]


class RubricStore(BaseModel):
    """Both axes, loaded once per process and never mutated."""
    model_config = {"frozen": True}

    principles: PrinciplesRubric
    checklist: PlanChecklist
