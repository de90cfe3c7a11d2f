"""Reporters package."""

from upgrade_status.reporters.json_formats import JSONReporter
from upgrade_status.reporters.markdown import MarkdownReporter
from upgrade_status.reporters.terminal import TerminalReporter

__all__ = [
    "TerminalReporter",
    "MarkdownReporter",
    "JSONReporter",
]
