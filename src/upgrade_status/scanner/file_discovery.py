"""Source file discovery for a project."""

import fnmatch
from pathlib import Path


class FileDiscovery:
    """Discovers source files under a project root."""

    def __init__(
        self,
        project_root: Path,
        extensions: list[str] | None = None,
        exclude_patterns: list[str] | None = None,
    ) -> None:
        """Initialize file discovery.

        Args:
            project_root: Root directory of the project
            extensions: Source file extensions to keep (e.g. [".py"])
            exclude_patterns: Glob patterns to exclude
        """
        self.project_root = Path(project_root).resolve()
        self.extensions = {ext.lower() for ext in (extensions or [".py"])}
        self.exclude_patterns = exclude_patterns or []

    def find_source_files(self) -> list[Path]:
        """Find all source files in the project.

        Returns:
            Sorted list of absolute file paths
        """
        if not self.project_root.is_dir():
            return []

        return sorted(
            path
            for path in self.project_root.rglob("*")
            if path.is_file()
            and path.suffix.lower() in self.extensions
            and not self._should_exclude(path)
        )

    def _should_exclude(self, file_path: Path) -> bool:
        """Check if file should be excluded based on patterns."""
        relative = file_path.relative_to(self.project_root)
        candidates = [relative.as_posix()] + [
            parent.as_posix() for parent in relative.parents if parent != Path(".")
        ]

        for pattern in self.exclude_patterns:
            pattern_normalized = pattern.replace("**", "*")
            # Patterns like "**/venv/**" must also match a top-level "venv" dir.
            bare = pattern_normalized.strip("*/")
            for candidate in candidates:
                if fnmatch.fnmatch(candidate, pattern_normalized) or fnmatch.fnmatch(candidate, bare):
                    return True

        return False
