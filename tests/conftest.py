"""
Pytest configuration and shared fixtures
"""
import json
import os
import sys
from typing import Any, Dict
from unittest.mock import AsyncMock, Mock

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mnv_scorecard.models.rubric import RubricStore
from mnv_scorecard.utils.rubric_loader import RubricLoader


@pytest.fixture
def rubric_store() -> RubricStore:
    """The shipped v1 rubric"""
    return RubricLoader(version="v1").load()


@pytest.fixture
def small_store() -> RubricStore:
    """Two principles and three elements, easy to reason about by hand"""
    return RubricStore(**{
        "principles": {
            "principles": {
                "accuracy": {
                    "name": "Accuracy",
                    "description": "Close to true values",
                    "criteria": {
                        "acc_1": {"name": "Meters", "weight": 25, "met": "m", "partial": "p", "not_met": "n"},
                        "acc_2": {"name": "Model", "weight": 75, "met": "m", "partial": "p", "not_met": "n"},
                    },
                },
                "transparency": {
                    "name": "Transparency",
                    "description": "Reproducible",
                    "criteria": {
                        "tr_1": {"name": "Assumptions", "weight": 40, "met": "m", "partial": "p", "not_met": "n"},
                        "tr_2": {"name": "Equations", "weight": 60, "met": "m", "partial": "p", "not_met": "n"},
                    },
                },
            }
        },
        "checklist": {
            "scoring": {"max_possible": 6},
            "elements": {
                "baseline_definition": {"name": "Baseline", "look_for": "x", "present": "p", "partial": "q", "missing": "m"},
                "reporting_period": {"name": "Reporting", "look_for": "x", "present": "p", "partial": "q", "missing": "m"},
                "measurement_boundary": {"name": "Boundary", "look_for": "x", "present": "p", "partial": "q", "missing": "m"},
            },
        },
    })


def make_envelope(text: str) -> Dict[str, Any]:
    """Messages-shaped provider envelope carrying one text block"""
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "test-model",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 10, "output_tokens": 20},
    }


@pytest.fixture
def envelope_factory():
    return make_envelope


@pytest.fixture
def model_evaluation() -> Dict[str, Any]:
    """Model output for small_store, with the model's own (wrong) arithmetic"""
    return {
        "schema_version": "2.0",
        "subject": "Option B lighting retrofit",
        "summary": "A submetered lighting retrofit plan.",
        "principle_adherence": {
            "composite_score": 99,
            "principles": {
                "accuracy": {
                    "score": 90,
                    "criteria": {
                        "acc_1": {"score": 20, "max_score": 25, "status": "partial", "evidence": "meters named", "gap": "no accuracy class"},
                        "acc_2": {"score": 70, "max_score": 75, "status": "met", "evidence": "CV(RMSE) 12%", "gap": None},
                    },
                },
                "transparency": {
                    "score": 50,
                    "criteria": {
                        "tr_1": {"score": 40, "max_score": 40, "status": "not_met", "evidence": "", "gap": "no sources"},
                        "tr_2": {"score": 10, "max_score": 60, "status": "partial", "evidence": "described", "gap": "no equations"},
                    },
                },
            },
        },
        "plan_completeness": {
            "structural_index": 1,
            "max_possible": 100,
            "percentage": 1,
            "elements": {
                "baseline_definition": {"score": 0, "status": "present", "evidence": "4 weeks", "section_ref": "2.1"},
                "reporting_period": {"score": 0, "status": "partial", "evidence": "12 months", "section_ref": None},
                "measurement_boundary": {"score": 2, "status": "missing", "evidence": "", "section_ref": None},
            },
        },
    }


@pytest.fixture
def model_envelope(model_evaluation):
    return make_envelope("```json\n" + json.dumps(model_evaluation) + "\n```")


@pytest.fixture
def mock_llm(model_envelope):
    """Mock provider client for testing"""
    llm = Mock()
    llm.model = "test-model"
    llm.create_message = AsyncMock(return_value=model_envelope)
    return llm


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "azure: Tests touching the Azure OpenAI client"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on file location"""
    for item in items:
        if "unit_test" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if "azure" in item.name.lower():
            item.add_marker(pytest.mark.azure)
