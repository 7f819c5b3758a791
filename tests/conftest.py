"""
Shared fixtures for the formflow test suite.
"""

from pathlib import Path

import pytest

from formflow.config import reload_config
from formflow.rules import RuleEvaluator
from formflow.schema import load_schema

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_FORM = FIXTURES_DIR / "sample_form.yaml"

_ENV_VARS = (
    "FORMFLOW_ENV",
    "FORMFLOW_MAX_RULE_EVALUATIONS",
    "FORMFLOW_HISTORY_LIMIT",
    "FORMFLOW_MAX_PATH_STEPS",
    "FORMFLOW_REVIEW_STEP_ID",
    "FORMFLOW_REVIEW_TERMINAL",
    "LOG_LEVEL",
    "LOG_DIR",
    "LOG_TO_FILE",
)


@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path):
    """Every test starts from default settings, isolated from the shell and any .env."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    config = reload_config()
    yield config
    reload_config()


@pytest.fixture
def evaluator():
    return RuleEvaluator(max_evaluations=1000, environment="test")


@pytest.fixture
def sample_schema():
    """The loan application form from fixtures/sample_form.yaml."""
    return load_schema(SAMPLE_FORM)


@pytest.fixture
def adult_data():
    return {"age": 30, "income": 60000, "plan": "pro"}


@pytest.fixture
def minor_data():
    return {"age": 16}
