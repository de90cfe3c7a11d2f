"""Persistent per-project store of scan reports."""

import json
import logging
from pathlib import Path

from upgrade_status.cache import FileLock, hash_key, write_json_atomic
from upgrade_status.models import Report

logger = logging.getLogger(__name__)


class ResultStore:
    """Key-value store of the latest report for each project.

    Every project key maps to one JSON file holding the persisted record.
    A missing key means the project was never scanned; a key holding an
    all-zero report means it was scanned without findings.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.locks_dir = self.directory / ".locks"
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        return self.directory / f"{hash_key(name)}.json"

    def _lock(self, name: str) -> FileLock:
        return FileLock(self.locks_dir / f"{hash_key(name)}.lock")

    def get(self, name: str) -> Report | None:
        """Get the stored report for a project, or None if never scanned."""
        path = self._path(name)
        if not path.exists():
            return None

        with self._lock(name):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    entry = json.load(f)
            except FileNotFoundError:
                return None
            except json.JSONDecodeError as e:
                logger.warning(f"Corrupted result file for {name}: {e}")
                return None

        try:
            return Report.from_record(entry["record"])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Malformed result file for {name}: {e!r}")
            return None

    def set(self, name: str, report: Report) -> None:
        """Store a report, replacing any previous one."""
        with self._lock(name):
            write_json_atomic(self._path(name), {"key": name, "record": report.to_record()})
        logger.debug(f"Stored report for {name}")

    def has(self, name: str) -> bool:
        return self._path(name).exists()

    def delete(self, name: str) -> bool:
        """Delete the report of one project.

        Returns:
            True if a report was deleted
        """
        path = self._path(name)
        with self._lock(name):
            if not path.exists():
                return False
            path.unlink()
        return True

    def delete_all(self) -> int:
        """Delete every stored report.

        Returns:
            Number of reports deleted
        """
        deleted = 0
        for path in self.directory.glob("*.json"):
            path.unlink(missing_ok=True)
            deleted += 1
        return deleted

    def keys(self) -> list[str]:
        """List project names with a stored report."""
        names: list[str] = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    names.append(json.load(f)["key"])
            except (OSError, json.JSONDecodeError, KeyError) as e:
                logger.warning(f"Skipping unreadable result file {path}: {e}")
        return sorted(names)
