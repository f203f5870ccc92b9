"""Shared fixtures and helpers for tests."""

from pathlib import Path

import pytest

from docast.models import SourceFile

_REPO_ROOT = Path(__file__).parent.parent
FIXTURES = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        if rel.parts and rel.parts[0] == "unit":
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_path() -> Path:
    return FIXTURES / "sample.ts"


@pytest.fixture
def sample_file(sample_path: Path) -> SourceFile:
    return SourceFile.read(sample_path)


@pytest.fixture
def sample_source(sample_file: SourceFile) -> str:
    return sample_file.value
