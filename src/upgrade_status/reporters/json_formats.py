"""JSON output formatter."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from upgrade_status.aggregator import Summary
from upgrade_status.models import Project

logger = logging.getLogger(__name__)


class JSONReporter:
    """Generates JSON exports of stored reports."""

    def generate_report(
        self,
        collection: dict[str, list[Project]],
        summaries: dict[str, Summary],
        output_file: Path | None = None,
    ) -> str:
        """Generate JSON export.

        Args:
            collection: Projects grouped by type
            summaries: Summaries per project type
            output_file: Optional path to save report

        Returns:
            JSON string
        """
        data = {
            "version": "1.0",
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "summary": {
                project_type: self._serialize_summary(summary)
                for project_type, summary in summaries.items()
            },
            "projects": {
                project_type: [self._serialize_project(p, summaries[project_type]) for p in projects]
                for project_type, projects in collection.items()
            },
        }

        json_str = json.dumps(data, indent=2, default=str)
        if output_file:
            output_file.write_text(json_str, encoding="utf-8")
        return json_str

    @staticmethod
    def _serialize_summary(summary: Summary) -> dict[str, Any]:
        return {
            "total_projects": summary.total,
            "errors": summary.errors,
            "warnings": summary.warnings,
            "projects_with_errors": summary.projects_with_errors,
            "projects_with_warnings": summary.projects_with_warnings,
            "not_scanned": summary.not_scanned,
            "no_known_errors": summary.no_known_errors,
            "next_step_groups": dict(summary.next_step_groups),
        }

    @staticmethod
    def _serialize_project(project: Project, summary: Summary) -> dict[str, Any]:
        row = next((r for r in summary.rows if r.name == project.name), None)
        return {
            "name": project.name,
            "label": project.label,
            "version": project.version,
            "path": str(project.path),
            "compatible": project.compatible,
            "status": row.status if row else None,
            "next_step": project.next_step.value if project.next_step else None,
            "update": {
                "status": int(project.update_status),
                "version": project.update_version,
                "link": project.update_link,
            } if project.update_status is not None else None,
            "report": row.report.to_record() if row and row.report else None,
        }
