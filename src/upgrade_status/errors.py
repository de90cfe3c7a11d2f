"""Exception hierarchy for upgrade status scans."""

from pathlib import Path


class UpgradeStatusError(Exception):
    """Base exception for all upgrade status errors."""


class ConfigurationError(UpgradeStatusError):
    """Invalid configuration or invalid request from the caller."""


class UnknownProjectError(ConfigurationError):
    """Requested project name was not found among the collected projects."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown project: {name}")


class BatchDecodeError(UpgradeStatusError):
    """Analyzer output for one batch could not be decoded."""


class AnalyzerCrashError(UpgradeStatusError):
    """The external analyzer died while processing a batch.

    Carries the last captured error text and, when the crash output names it,
    the file that was being analyzed.
    """

    def __init__(
        self,
        message: str,
        file: Path | str | None = None,
        line: int = 0,
    ) -> None:
        self.message = message
        self.file = str(file) if file is not None else None
        self.line = line
        super().__init__(message)


class AuxiliaryFetchError(UpgradeStatusError):
    """Best-effort enrichment lookup (plans, updates) failed."""
