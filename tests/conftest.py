import json
from pathlib import Path
from typing import Any

import pytest

from infra_reconcile.config.models import ProjectSettings
from tests.helpers import CDKTF_STATE_PATH, FakeRunner


@pytest.fixture
def project_settings():
    """A minimal project config."""
    return ProjectSettings(name="proj", gcp_project_id="my-gcp", region="us-central1")


@pytest.fixture
def make_runner():
    """Factory for fake command runners."""
    return FakeRunner


@pytest.fixture
def write_state(tmp_path):
    """Write a state file under tmp_path and return its path."""

    def _write(content: Any, relative: str = CDKTF_STATE_PATH) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            path.write_text(content)
        else:
            path.write_text(json.dumps(content))
        return path

    return _write


@pytest.fixture
def terraform_dir(tmp_path):
    """An initialized terraform working directory."""
    work_dir = tmp_path / "stack"
    (work_dir / ".terraform").mkdir(parents=True)
    return work_dir
