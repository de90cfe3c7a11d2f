"""Core data models for upgrade status scans."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any


class ProjectType(str, Enum):
    """Who maintains a project."""

    CUSTOM = "custom"
    CONTRIB = "contrib"


class Category(str, Enum):
    """Actionability of a single finding."""

    OLD = "old"
    SAFE = "safe"
    LATER = "later"
    UNCATEGORIZED = "uncategorized"
    IGNORE = "ignore"

    @property
    def split(self) -> str | None:
        """Bucket used by the error/warning split (None for ignored findings)."""
        if self in (Category.OLD, Category.SAFE):
            return "error"
        if self in (Category.LATER, Category.UNCATEGORIZED):
            return "warning"
        return None

    @property
    def label(self) -> str:
        """Action label shown next to findings of this category."""
        if self in (Category.OLD, Category.SAFE):
            return "Fix now"
        if self == Category.LATER:
            return "Fix later"
        if self == Category.IGNORE:
            return "Ignore"
        return "Check manually"


class UpdateStatus(IntEnum):
    """Availability of an upstream release for a contrib project."""

    NOT_CHECKED = 0
    NOT_AVAILABLE = 1
    INCOMPATIBLE_UPDATE = 2
    COMPATIBLE_UPDATE = 3
    ALREADY_LATEST = 4


class NextStep(str, Enum):
    """Suggested next action for a project."""

    RELAX = "relax"
    REMOVE = "remove"
    UPDATE = "update"
    COLLABORATE = "collaborate"
    SCAN = "scan"
    MANUAL = "manual"


@dataclass(frozen=True)
class NextStepInfo:
    """Display information for a next step."""

    label: str
    description: str
    group: str  # "act", "analyze" or "relax"


NEXT_STEP_INFO: dict[NextStep, NextStepInfo] = {
    NextStep.REMOVE: NextStepInfo(
        "Remove",
        "The project is not enabled. Removing it is cheaper than making it "
        "compatible with the upgrade target.",
        "act",
    ),
    NextStep.UPDATE: NextStepInfo(
        "Update",
        "An update is available. Even if it is not fully compatible yet, it is "
        "likely closer to compatibility than the installed version.",
        "act",
    ),
    NextStep.SCAN: NextStepInfo(
        "Scan",
        "The status of this project cannot be determined without scanning its "
        "source code.",
        "analyze",
    ),
    NextStep.COLLABORATE: NextStepInfo(
        "Collaborate with maintainers",
        "There is no compatible release yet. Work with the maintainers on "
        "the open compatibility issues.",
        "act",
    ),
    NextStep.MANUAL: NextStepInfo(
        "Fix manually",
        "Deprecated API use was found. Check the report for pointers on how "
        "to fix it.",
        "act",
    ),
    NextStep.RELAX: NextStepInfo(
        "Compatible",
        "Well done. This project is ready for the upgrade.",
        "relax",
    ),
}


@dataclass
class Component:
    """An installed component as reported by the host."""

    name: str
    type: str  # "module", "theme" or "profile"
    path: Path
    manifest_path: Path | None = None
    info: dict[str, Any] = field(default_factory=dict)
    origin: str | None = None
    enabled: bool = True

    @property
    def project(self) -> str | None:
        """Declared project identifier, if any."""
        return self.info.get("project") or None

    @property
    def label(self) -> str:
        return str(self.info.get("name") or self.name)

    @property
    def version(self) -> str | None:
        version = self.info.get("version")
        return str(version) if version is not None else None

    @property
    def constraint(self) -> str | None:
        """Declared compatibility constraint with the platform."""
        constraint = self.info.get("core_version_requirement")
        return str(constraint) if constraint else None


@dataclass
class Project:
    """A deployable unit of code under scan."""

    name: str
    label: str
    path: Path
    type: ProjectType
    version: str | None = None
    manifest_path: Path | None = None
    constraint: str | None = None
    compatible: bool = False
    enabled: bool = True
    component_type: str = "module"
    update_status: UpdateStatus | None = None
    update_version: str | None = None
    update_link: str | None = None
    next_step: NextStep | None = None

    @property
    def is_contrib(self) -> bool:
        return self.type == ProjectType.CONTRIB

    @property
    def display_label(self) -> str:
        """Label with version for display."""
        if self.version:
            return f"{self.label} {self.version}"
        return self.label


@dataclass
class Finding:
    """One reported deprecation occurrence."""

    file: str
    line: int
    message: str
    category: Category | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "line": self.line,
            "upgrade_status_category": self.category.value if self.category else None,
        }


@dataclass
class ReportTotals:
    """Summary counters of a report."""

    errors: int = 0
    file_errors: int = 0
    categories: dict[str, int] = field(default_factory=dict)
    split: dict[str, int] = field(default_factory=lambda: {"error": 0, "warning": 0})
    next_step: NextStep | None = None


@dataclass
class Report:
    """Merged and categorized scan result for one project."""

    date: int
    totals: ReportTotals = field(default_factory=ReportTotals)
    files: dict[str, list[Finding]] = field(default_factory=dict)
    plans: str | None = None

    @property
    def findings(self) -> list[Finding]:
        """All findings across files, in file order."""
        return [finding for messages in self.files.values() for finding in messages]

    @property
    def finding_count(self) -> int:
        return sum(len(messages) for messages in self.files.values())

    @property
    def error_count(self) -> int:
        return self.totals.split.get("error", 0)

    @property
    def warning_count(self) -> int:
        return self.totals.split.get("warning", 0)

    @property
    def has_findings(self) -> bool:
        """True if any finding is actionable (error or warning)."""
        return self.error_count + self.warning_count > 0

    def add_finding(self, finding: Finding) -> None:
        """Append a finding under its file."""
        self.files.setdefault(finding.file, []).append(finding)

    def tally(self) -> None:
        """Recompute category and split counters from the findings."""
        categories = {category.value: 0 for category in Category}
        split = {"error": 0, "warning": 0}

        for finding in self.findings:
            category = finding.category or Category.UNCATEGORIZED
            categories[category.value] += 1
            if category.split:
                split[category.split] += 1

        self.totals.categories = categories
        self.totals.split = split

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record format."""
        totals: dict[str, Any] = {
            "errors": self.totals.errors,
            "file_errors": self.totals.file_errors,
            "upgrade_status_category": dict(self.totals.categories),
            "upgrade_status_split": dict(self.totals.split),
        }
        if self.totals.next_step is not None:
            totals["upgrade_status_next"] = self.totals.next_step.value

        record: dict[str, Any] = {
            "date": self.date,
            "data": {
                "totals": totals,
                "files": {
                    path: {"messages": [finding.to_record() for finding in messages]}
                    for path, messages in self.files.items()
                },
            },
        }
        if self.plans is not None:
            record["plans"] = self.plans
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Report":
        """Rebuild a report from its persisted record."""
        data = record.get("data", {})
        raw_totals = data.get("totals", {})

        next_step = raw_totals.get("upgrade_status_next")
        totals = ReportTotals(
            errors=int(raw_totals.get("errors", 0)),
            file_errors=int(raw_totals.get("file_errors", 0)),
            categories=dict(raw_totals.get("upgrade_status_category", {})),
            split=dict(raw_totals.get("upgrade_status_split", {"error": 0, "warning": 0})),
            next_step=NextStep(next_step) if next_step else None,
        )

        files: dict[str, list[Finding]] = {}
        for path, entry in data.get("files", {}).items():
            files[path] = [
                Finding(
                    file=path,
                    line=int(message.get("line", 0)),
                    message=message.get("message", ""),
                    category=(
                        Category(message["upgrade_status_category"])
                        if message.get("upgrade_status_category")
                        else None
                    ),
                )
                for message in entry.get("messages", [])
            ]

        return cls(
            date=int(record.get("date", 0)),
            totals=totals,
            files=files,
            plans=record.get("plans"),
        )
