"""Version parsing and compatibility constraint matching."""

import logging
import re

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

logger = logging.getLogger(__name__)

_OPERATOR_SPACING = re.compile(r"(>=|<=|!=|==|~=|>|<|=|\^|~)\s+")
_PEP440_OPERATORS = (">=", "<=", "!=", "==", "~=", ">", "<")


def parse_version(text: str | None) -> Version | None:
    """Parse a version string.

    Args:
        text: Version string (e.g. "8.9.0")

    Returns:
        Parsed version or None if invalid
    """
    if not text:
        return None
    try:
        return Version(str(text).strip())
    except InvalidVersion:
        logger.debug(f"Invalid version: {text}")
        return None


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings.

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b

    Raises:
        ValueError: If either version cannot be parsed
    """
    version_a = parse_version(a)
    version_b = parse_version(b)
    if version_a is None or version_b is None:
        raise ValueError(f"Cannot compare versions {a!r} and {b!r}")

    if version_a < version_b:
        return -1
    if version_a > version_b:
        return 1
    return 0


def major_of(version: str) -> int:
    """Get the major component of a version string."""
    parsed = parse_version(version)
    if parsed is None:
        raise ValueError(f"Invalid version: {version}")
    return parsed.major


def _numeric_parts(text: str) -> list[int]:
    return [int(part) for part in text.split(".")]


def _clause_to_specifiers(clause: str) -> list[str]:
    """Translate one constraint clause into PEP 440 specifiers."""
    if clause in ("", "*"):
        return []

    if clause.startswith("^"):
        parts = _numeric_parts(clause[1:])
        lower = ".".join(str(p) for p in parts)
        if parts[0] > 0 or len(parts) == 1:
            upper = f"{parts[0] + 1}"
        elif parts[1] > 0 or len(parts) == 2:
            upper = f"0.{parts[1] + 1}"
        else:
            upper = f"0.0.{parts[2] + 1}"
        return [f">={lower}", f"<{upper}"]

    if clause.startswith("~") and not clause.startswith("~="):
        parts = _numeric_parts(clause[1:])
        lower = ".".join(str(p) for p in parts)
        if len(parts) <= 2:
            upper = f"{parts[0] + 1}"
        else:
            upper = f"{parts[0]}.{parts[1] + 1}"
        return [f">={lower}", f"<{upper}"]

    if clause.endswith((".x", ".*")):
        return [f"=={clause[:-2]}.*"]

    if clause.startswith(_PEP440_OPERATORS):
        return [clause]

    if clause.startswith("="):
        return [f"={clause}"]

    return [f"=={clause}"]


def satisfies(version: str, constraint: str | None) -> bool:
    """Check whether a version satisfies a compatibility constraint.

    Alternatives are separated by ``||``. Each alternative holds one or more
    clauses separated by spaces or commas: PEP 440 specifiers (``>=8.8,<10``),
    caret (``^8.8``) or tilde (``~8.7``) ranges, wildcards (``9.x``) or exact
    versions.

    Args:
        version: Version to test (e.g. "9.0.0")
        constraint: Constraint expression

    Returns:
        True if any alternative admits the version, False otherwise or if the
        constraint cannot be parsed
    """
    if not constraint:
        return False

    parsed = parse_version(version)
    if parsed is None:
        return False

    for alternative in re.split(r"\|\|?", constraint):
        alternative = _OPERATOR_SPACING.sub(r"\1", alternative.strip())
        if not alternative:
            continue

        try:
            specifiers: list[str] = []
            for clause in re.split(r"[\s,]+", alternative):
                specifiers.extend(_clause_to_specifiers(clause))
            spec_set = SpecifierSet(",".join(specifiers))
        except (ValueError, IndexError, InvalidSpecifier) as e:
            logger.debug(f"Invalid constraint {constraint!r}: {e}")
            return False

        if spec_set.contains(parsed, prereleases=True):
            return True

    return False
