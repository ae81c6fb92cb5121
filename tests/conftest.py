import json

import pytest

from code_reconciler.config import ReconcilerSettings
from code_reconciler.extraction import StructuredExtractor
from code_reconciler.matching import PatchMatcher
from code_reconciler.models import StrategyMetrics


@pytest.fixture
def settings():
    return ReconcilerSettings()


@pytest.fixture
def extractor(settings):
    return StructuredExtractor(settings)


@pytest.fixture
def matcher(settings):
    return PatchMatcher(settings)


@pytest.fixture
def metrics():
    return StrategyMetrics()


@pytest.fixture
def sample_payload():
    """A valid {files, summary} object covering every operation."""
    return {
        "files": [
            {"path": "src/new.ts", "operation": "create", "content": "export const a = 1;\n"},
            {"path": "src/old.ts", "operation": "delete"},
            {
                "path": "src/app.ts",
                "operation": "patch",
                "patches": [{"search": "const x = 1;", "replace": "const x = 2;"}],
            },
        ],
        "summary": "Add new module, drop old one, bump x",
    }


@pytest.fixture
def sample_json(sample_payload):
    return json.dumps(sample_payload)
