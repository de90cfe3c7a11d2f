"""Scanning package: file batching, analyzer invocation and categorization."""

from upgrade_status.scanner.batch_analyzer import (
    BatchAnalyzer,
    BatchResult,
    CallableBatchAnalyzer,
    SubprocessBatchAnalyzer,
    decode_batch,
    partition,
)
from upgrade_status.scanner.categorizer import MessageCategorizer, PinnedDeprecation
from upgrade_status.scanner.file_discovery import FileDiscovery
from upgrade_status.scanner.metadata import check_compatibility, check_pyproject
from upgrade_status.scanner.plans import PlanSource, UpstreamPlanClient

__all__ = [
    "BatchAnalyzer",
    "BatchResult",
    "CallableBatchAnalyzer",
    "SubprocessBatchAnalyzer",
    "decode_batch",
    "partition",
    "MessageCategorizer",
    "PinnedDeprecation",
    "FileDiscovery",
    "check_compatibility",
    "check_pyproject",
    "PlanSource",
    "UpstreamPlanClient",
]
