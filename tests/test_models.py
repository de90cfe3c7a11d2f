"""Tests for data models."""

from pathlib import Path

from upgrade_status.models import (
    NEXT_STEP_INFO,
    Category,
    Component,
    Finding,
    NextStep,
    Report,
    ReportTotals,
)


class TestCategory:
    """Test category buckets and labels."""

    def test_split(self):
        assert Category.OLD.split == "error"
        assert Category.SAFE.split == "error"
        assert Category.LATER.split == "warning"
        assert Category.UNCATEGORIZED.split == "warning"
        assert Category.IGNORE.split is None

    def test_labels(self):
        assert Category.SAFE.label == "Fix now"
        assert Category.LATER.label == "Fix later"
        assert Category.IGNORE.label == "Ignore"
        assert Category.UNCATEGORIZED.label == "Check manually"

    def test_every_next_step_has_info(self):
        assert set(NEXT_STEP_INFO) == set(NextStep)


class TestComponent:
    """Test manifest-derived properties."""

    def test_properties(self):
        component = Component(
            name="views_extra",
            type="module",
            path=Path("/c/views_extra"),
            info={"name": "Views Extra", "version": 2.1, "project": "views_extra", "core_version_requirement": "^9"},
        )

        assert component.label == "Views Extra"
        assert component.version == "2.1"
        assert component.project == "views_extra"
        assert component.constraint == "^9"

    def test_defaults(self):
        component = Component(name="mine", type="module", path=Path("/site/mine"))

        assert component.label == "mine"
        assert component.project is None
        assert component.constraint is None


class TestReport:
    """Test report counters and the persisted record format."""

    def test_tally_initializes_every_category(self):
        report = Report(date=1)
        report.add_finding(Finding(file="/a.py", line=1, message="m", category=Category.IGNORE))

        report.tally()

        assert report.totals.categories == {
            "old": 0, "safe": 0, "later": 0, "uncategorized": 0, "ignore": 1,
        }
        assert report.totals.split == {"error": 0, "warning": 0}
        assert not report.has_findings

    def test_record_format(self):
        report = Report(date=1700000000, totals=ReportTotals(errors=2, next_step=NextStep.MANUAL))
        report.add_finding(Finding(file="/a.py", line=4, message="m", category=Category.LATER))
        report.totals.file_errors = 1
        report.tally()

        record = report.to_record()

        assert record == {
            "date": 1700000000,
            "data": {
                "totals": {
                    "errors": 2,
                    "file_errors": 1,
                    "upgrade_status_category": {
                        "old": 0, "safe": 0, "later": 1, "uncategorized": 0, "ignore": 0,
                    },
                    "upgrade_status_split": {"error": 0, "warning": 1},
                    "upgrade_status_next": "manual",
                },
                "files": {
                    "/a.py": {"messages": [
                        {"message": "m", "line": 4, "upgrade_status_category": "later"},
                    ]},
                },
            },
        }

    def test_from_record(self):
        record = {
            "date": 5,
            "plans": "Port planned",
            "data": {
                "totals": {"errors": 0, "file_errors": 1, "upgrade_status_split": {"error": 1, "warning": 0}},
                "files": {"/a.py": {"messages": [{"message": "m", "line": 2, "upgrade_status_category": "old"}]}},
            },
        }

        report = Report.from_record(record)

        assert report.plans == "Port planned"
        assert report.error_count == 1
        assert report.totals.next_step is None
        assert report.files["/a.py"][0].category == Category.OLD
