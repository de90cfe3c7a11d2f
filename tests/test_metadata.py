"""Tests for manifest and pyproject metadata checks."""

from pathlib import Path

from upgrade_status.models import Project, ProjectType
from upgrade_status.scanner.metadata import check_compatibility, check_pyproject


def project(path: Path, constraint: str | None = "^9") -> Project:
    return Project(
        name="mine",
        label="Mine",
        path=path,
        type=ProjectType.CUSTOM,
        manifest_path=path / "mine.info.yml",
        constraint=constraint,
    )


class TestCheckCompatibility:
    """Test the manifest compatibility constraint check."""

    def test_compatible_constraint_has_no_finding(self, tmp_path: Path):
        assert check_compatibility(project(tmp_path), "9.0.0", "platform") == []

    def test_missing_constraint(self, tmp_path: Path):
        findings = check_compatibility(project(tmp_path, None), "9.0.0", "platform")

        assert len(findings) == 1
        assert findings[0].file == str(tmp_path / "mine.info.yml")
        assert findings[0].line == 0
        assert findings[0].message.startswith("Add core_version_requirement to mine.info.yml")

    def test_incompatible_constraint(self, tmp_path: Path):
        findings = check_compatibility(project(tmp_path, "^8"), "9.0.0", "platform")

        assert findings[0].message == (
            "The current value core_version_requirement: ^8 in mine.info.yml "
            "is not compatible with platform 9.0.0."
        )


class TestCheckPyproject:
    """Test the pyproject.toml requirement check."""

    def test_no_pyproject(self, tmp_path: Path):
        assert check_pyproject(project(tmp_path), "platform", "9.0.0") == []

    def test_parse_error(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text("[project\nname = ")

        findings = check_pyproject(project(tmp_path), "platform", "9.0.0")

        assert findings[0].message.startswith("Parse error in pyproject.toml")
        assert findings[0].line == 0

    def test_missing_requirement(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "mine"\ndependencies = ["requests"]\n')

        findings = check_pyproject(project(tmp_path), "platform", "9.0.0")

        assert "requirement is not present" in findings[0].message

    def test_compatible_requirement(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "mine"\ndependencies = ["Platform>=8.8,<10"]\n'
        )

        assert check_pyproject(project(tmp_path), "platform", "9.0.0") == []

    def test_unpinned_requirement_is_compatible(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "mine"\ndependencies = ["platform"]\n')

        assert check_pyproject(project(tmp_path), "platform", "9.0.0") == []

    def test_incompatible_requirement(self, tmp_path: Path):
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "mine"\ndependencies = ["platform~=8.8"]\n'
        )

        findings = check_pyproject(project(tmp_path), "platform", "9.0.0")

        assert "~=8.8" in findings[0].message
        assert "not compatible" in findings[0].message
