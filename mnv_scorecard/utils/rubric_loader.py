import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import MalformedRubric
from mnv_scorecard.models.rubric import PlanChecklist, PrinciplesRubric, RubricStore

logger = logging.getLogger(__name__)

PRINCIPLES_FILE = "mv-principles.json"
CHECKLIST_FILE = "plan-checklist.json"

# Points an element earns when "present"; max_possible is expected to be this × element count.
PRESENT_POINTS = 2


def validate_rubric_store(store: RubricStore) -> RubricStore:
    """Check the cross-field rules pydantic field constraints cannot express.

    - every principle has at least one criterion
    - every criterion weight is positive
    - max_possible is positive and equals 2 × number of elements
    Principles whose weights do not sum to 100 are only logged.
    """
    if not store.principles.principles:
        raise MalformedRubric("Rubric defines no principles")

    for principle_id, principle in store.principles.principles.items():
        if not principle.criteria:
            raise MalformedRubric(
                f"Principle '{principle_id}' has no criteria",
                details={"principle_id": principle_id},
            )
        for criterion_id, criterion in principle.criteria.items():
            if not criterion.weight > 0:
                raise MalformedRubric(
                    f"Criterion '{criterion_id}' in '{principle_id}' has non-positive weight {criterion.weight}",
                    details={"principle_id": principle_id, "criterion_id": criterion_id},
                )
        if abs(principle.total_weight - 100) > 1e-9:
            logger.warning(
                f"Principle '{principle_id}' weights sum to {principle.total_weight}, not 100; "
                "its score is averaged with the others as-is"
            )

    checklist = store.checklist
    max_possible = checklist.scoring.max_possible
    if not max_possible > 0:
        raise MalformedRubric(f"Checklist max_possible must be positive, got {max_possible}")

    expected = PRESENT_POINTS * len(checklist.elements)
    if max_possible != expected:
        raise MalformedRubric(
            f"Checklist max_possible is {max_possible} but {len(checklist.elements)} elements "
            f"allow at most {expected}",
            details={"max_possible": max_possible, "expected": expected},
        )

    return store


class RubricLoader:
    """Load and validate versioned rubric data for plan evaluation."""

    def __init__(self, rubrics_dir: Optional[str] = None, version: str = "v1") -> None:
        """
        - If `rubrics_dir` is None, resolve to `<package>/rubrics`.
        - If `rubrics_dir` is provided and not found relative to the CWD,
          also try resolving it relative to the package.
        """
        package_root = Path(__file__).resolve().parents[1]

        if rubrics_dir is None:
            self.rubrics_dir: Path = package_root / "rubrics"
        else:
            candidate = Path(rubrics_dir)
            self.rubrics_dir = candidate if candidate.exists() else (package_root / candidate)

        self.version = version
        self._store: Optional[RubricStore] = None

    @property
    def version_dir(self) -> Path:
        return self.rubrics_dir / self.version

    def _read_json(self, filename: str) -> Dict[str, Any]:
        json_file = self.version_dir / filename
        if not json_file.exists():
            raise FileNotFoundError(f"Required rubric file not found: {json_file}")
        with open(json_file, "r", encoding="utf-8") as file:
            return json.load(file)

    def load(self) -> RubricStore:
        """Load both axes once; later calls return the cached store."""
        if self._store is not None:
            return self._store

        if not self.version_dir.exists():
            raise FileNotFoundError(
                f"Rubric directory not found: {self.version_dir}. "
                f"Please ensure the rubric files are set up in {self.version_dir}"
            )

        try:
            store = RubricStore(
                principles=PrinciplesRubric(**self._read_json(PRINCIPLES_FILE)),
                checklist=PlanChecklist(**self._read_json(CHECKLIST_FILE)),
            )
        except (ValidationError, json.JSONDecodeError) as exc:
            raise MalformedRubric(f"Error loading rubric {self.version}: {exc}") from exc

        self._store = validate_rubric_store(store)
        logger.info(
            f"Loaded rubric {self.version}: {len(store.principles.principles)} principles, "
            f"{store.principles.criteria_count} criteria, {len(store.checklist.elements)} elements"
        )
        return self._store

    def reload(self) -> RubricStore:
        """Re-read rubric files (useful for development/testing)."""
        self._store = None
        return self.load()


@lru_cache()
def get_rubric_store() -> RubricStore:
    """Process-wide, read-only rubric store."""
    return RubricLoader(version=settings.RUBRIC_VERSION).load()
