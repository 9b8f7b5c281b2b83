"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.adaptive.history import Round, RoundHistory
from src.core.findings import Finding, Severity
from src.scoring.scorer import Scorecard


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full CACR cycles)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def sample_bank_path():
    """Path to the bundled security review challenge bank."""
    return PROJECT_ROOT / "data" / "challenges" / "security_review.json"


def finding(
    id: str,
    category: str = "injection",
    severity: str = "high",
    location: str | None = None,
    description: str = "",
    interest_weight: float | None = None,
) -> Finding:
    """Build a Finding with sensible defaults (location defaults to the id)."""
    return Finding(
        id=id,
        category=category,
        severity=Severity(severity),
        location=location or f"file.py:{id}",
        description=description,
        interest_weight=interest_weight,
    )


def scorecard(
    f1: float = 0.5,
    precision: float = 0.5,
    recall: float = 0.5,
    per_category_recall: dict[str, float] | None = None,
) -> Scorecard:
    """A Scorecard with the given metrics and no finding lists."""
    return Scorecard(
        true_positives=(),
        false_positives=(),
        false_negatives=(),
        precision=precision,
        recall=recall,
        f1=f1,
        severity_accuracy=0.0,
        category_accuracy=0.0,
        per_category_recall=per_category_recall or {},
    )


def build_history(*entries: dict) -> RoundHistory:
    """
    Build a RoundHistory from round descriptions.

    Each entry holds "level" plus any scorecard() keyword ("f1", "precision",
    "recall", "per_category_recall").
    """
    history = RoundHistory()
    for index, entry in enumerate(entries):
        entry = dict(entry)
        level = entry.pop("level", 1)
        card = scorecard(**entry)
        history.append(
            Round(
                index=index,
                difficulty_level=level,
                category_tags=frozenset(card.per_category_recall),
                scorecard=card,
                reflection_text="test reflection",
            )
        )
    return history


@pytest.fixture
def make_finding():
    """Factory fixture for Findings."""
    return finding


@pytest.fixture
def make_scorecard():
    """Factory fixture for metric-only Scorecards."""
    return scorecard


@pytest.fixture
def make_history():
    """Factory fixture for RoundHistory built from round descriptions."""
    return build_history
