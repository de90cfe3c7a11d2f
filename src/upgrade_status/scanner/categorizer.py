"""Categorization of deprecation messages by urgency."""

import logging
import re
from dataclasses import dataclass

from upgrade_status.models import Category, Finding
from upgrade_status.versions import compare_versions, major_of

logger = logging.getLogger(__name__)

_COLON_PHRASING = re.compile(r":\s+(in|as of)")


@dataclass(frozen=True)
class PinnedDeprecation:
    """A deprecation whose replacement shipped earlier than its message says.

    ``pattern`` is a regular expression matched against the rewritten message;
    ``{platform}`` is replaced by the platform name pattern.
    """

    pattern: str
    version: str

    def note(self, platform_name: str) -> str:
        return f" Replacement available from {platform_name}:{self.version}."


DEFAULT_PINNED: tuple[PinnedDeprecation, ...] = (
    PinnedDeprecation(r"\b(Web)?TestBase\. Deprecated in {platform}[ :]8\.8\.0 ", "8.6.0"),
)


class MessageCategorizer:
    """Rewrites deprecation messages and assigns a category.

    Contrib projects are compared against the oldest supported platform
    version, custom projects against the running platform version. A message
    announcing removal two major versions ahead is always ignored.
    """

    def __init__(
        self,
        platform_name: str,
        platform_version: str,
        oldest_supported: str,
        inclusive_boundary: bool = True,
        pinned: tuple[PinnedDeprecation, ...] = DEFAULT_PINNED,
    ) -> None:
        """Initialize the categorizer.

        Args:
            platform_name: Platform identifier used in deprecation messages
            platform_version: Currently running platform version
            oldest_supported: Oldest platform version still supported
            inclusive_boundary: Treat a version equal to the baseline as
                actionable now (``<=``) instead of deferred (``<``)
            pinned: Deprecations pinned to a known introduced version
        """
        self.platform_name = platform_name
        self.platform_version = platform_version
        self.oldest_supported = oldest_supported
        self.inclusive_boundary = inclusive_boundary
        self.pinned = pinned

        # Matches "platform" as well as "Platform".
        name = re.escape(platform_name)
        platform_pattern = f"(?i:{name[0]}){name[1:]}" if name else name

        self._introduced = re.compile(
            rf"Deprecated (in|as of) {platform_pattern}[ :](\d+\.\d+)"
        )
        self._pinned = [
            (re.compile(p.pattern.replace("{platform}", platform_pattern)), p)
            for p in pinned
        ]

        ignored_major = major_of(platform_version) + 2
        self._removed_far_ahead = re.compile(
            rf"(will be|is) removed (before|from) {platform_pattern}[ :]{ignored_major}\.\d"
        )

    def _is_at_or_before(self, version: str, baseline: str) -> bool:
        result = compare_versions(version, baseline)
        return result <= 0 if self.inclusive_boundary else result < 0

    def extract_version(self, message: str) -> tuple[str, str | None]:
        """Find the version a deprecation was introduced in.

        Returns:
            Tuple of (message with any pinned note appended, version or None)
        """
        for pattern, pinned in self._pinned:
            if pattern.search(message):
                return message + pinned.note(self.platform_name), pinned.version

        match = self._introduced.search(message)
        if match:
            return message, match.group(2)
        return message, None

    def categorize(
        self,
        message: str,
        is_contrib: bool,
        project_compatible: bool | None = None,
    ) -> tuple[str, Category]:
        """Categorize one raw analyzer message.

        Args:
            message: Raw message text
            is_contrib: Whether the project is a contrib project
            project_compatible: Accepted for callers that have it; the
                category does not depend on it

        Returns:
            Tuple of (rewritten message, category)
        """
        message = _COLON_PHRASING.sub(r". Deprecated \1", message)
        message, version = self.extract_version(message)

        category = Category.UNCATEGORIZED
        if version is not None:
            if is_contrib:
                if self._is_at_or_before(version, self.oldest_supported):
                    category = Category.OLD
                else:
                    category = Category.LATER
            elif self._is_at_or_before(version, self.platform_version):
                category = Category.SAFE
            else:
                category = Category.LATER

        if self._removed_far_ahead.search(message):
            category = Category.IGNORE

        return message, category

    def categorize_finding(self, finding: Finding, is_contrib: bool) -> Finding:
        """Rewrite and categorize a finding in place."""
        finding.message, finding.category = self.categorize(finding.message, is_contrib)
        return finding
