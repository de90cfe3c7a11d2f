"""Test configuration."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from upgrade_status.models import Project, ProjectType
from upgrade_status.scanner.categorizer import MessageCategorizer
from upgrade_status.store import ResultStore


def write_manifest(directory: Path, name: str, **info: Any) -> Path:
    """Create a component manifest ``<directory>/<name>.info.yml``."""
    directory.mkdir(parents=True, exist_ok=True)
    manifest = directory / f"{name}.info.yml"
    data = {"name": name.replace("_", " ").title(), "type": "module"}
    data.update(info)
    manifest.write_text(yaml.safe_dump(data))
    return manifest


class FakeAnalyzer:
    """In-process analyzer reporting one message per file.

    ``outputs`` maps a batch index (0-based) to the raw output returned for
    that batch instead of the generated result.
    """

    def __init__(self, message: str = "Call to deprecated function old_api().", outputs: dict[int, Any] | None = None):
        self.message = message
        self.outputs = outputs or {}
        self.batches: list[list[Path]] = []

    def run_batch(self, paths: list[Path], config_path: Path | None = None) -> Any:
        index = len(self.batches)
        self.batches.append(list(paths))
        if index in self.outputs:
            output = self.outputs[index]
            if isinstance(output, Exception):
                raise output
            return output

        files = {
            str(path): {"errors": 1, "messages": [{"message": self.message, "line": 3}]}
            for path in paths
        }
        return json.dumps({
            "totals": {"errors": 0, "file_errors": len(paths)},
            "files": files,
        })


@pytest.fixture
def result_store(tmp_path: Path) -> ResultStore:
    """Result store in a temporary directory."""
    return ResultStore(tmp_path / "results")


@pytest.fixture
def categorizer() -> MessageCategorizer:
    """Categorizer for platform 8.9.0 with 8.7 as oldest supported version."""
    return MessageCategorizer("platform", "8.9.0", "8.7")


@pytest.fixture
def sample_project_dir(tmp_path: Path) -> Path:
    """Create a sample project directory."""
    project_dir = tmp_path / "sample_project"
    project_dir.mkdir(parents=True, exist_ok=True)
    return project_dir


@pytest.fixture
def custom_project(sample_project_dir: Path) -> Project:
    """Compatible custom project with one source file."""
    manifest = write_manifest(
        sample_project_dir,
        "sample_project",
        core_version_requirement="^8.8 || ^9",
    )
    (sample_project_dir / "main.py").write_text("from platform_api import old_api\n\nold_api()\n")

    return Project(
        name="sample_project",
        label="Sample Project",
        path=sample_project_dir,
        type=ProjectType.CUSTOM,
        manifest_path=manifest,
        constraint="^8.8 || ^9",
        compatible=True,
    )
