"""Project metadata checks that do not need the analyzer."""

import logging
from pathlib import Path

import toml
from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from upgrade_status.models import Finding, Project
from upgrade_status.versions import parse_version, satisfies

logger = logging.getLogger(__name__)


def check_compatibility(project: Project, target_version: str, platform_name: str) -> list[Finding]:
    """Check the compatibility constraint declared in the project manifest.

    Args:
        project: Project to check
        target_version: Platform version the upgrade targets
        platform_name: Platform identifier used in messages

    Returns:
        Zero or one finding at line 0 of the manifest
    """
    manifest = project.manifest_path or project.path
    manifest_name = Path(manifest).name

    if not project.constraint:
        message = (
            f"Add core_version_requirement to {manifest_name} to designate that "
            f"the project is compatible with {platform_name} {target_version}."
        )
    elif not satisfies(target_version, project.constraint):
        message = (
            f"The current value core_version_requirement: {project.constraint} in "
            f"{manifest_name} is not compatible with {platform_name} {target_version}."
        )
    else:
        return []

    return [Finding(file=str(manifest), line=0, message=message)]


def check_pyproject(project: Project, package: str, target_version: str) -> list[Finding]:
    """Check the platform requirement of a project's ``pyproject.toml``.

    A project does not need a ``pyproject.toml``, but if it has one it must
    parse and must require the platform package in a compatible range.

    Args:
        project: Project to check
        package: Platform distribution name
        target_version: Platform version the upgrade targets

    Returns:
        Zero or one finding at line 0 of ``pyproject.toml``
    """
    pyproject = Path(project.path) / "pyproject.toml"
    if not pyproject.is_file():
        return []

    def finding(message: str) -> list[Finding]:
        return [Finding(file=str(pyproject), line=0, message=message)]

    try:
        data = toml.load(pyproject)
    except toml.TomlDecodeError as e:
        logger.debug(f"Cannot parse {pyproject}: {e}")
        return finding(
            "Parse error in pyproject.toml. Having a pyproject.toml is not required, "
            "but if there is one, it should be valid."
        )

    dependencies = data.get("project", {}).get("dependencies", [])
    wanted = canonicalize_name(package)

    requirement = None
    for dependency in dependencies:
        try:
            candidate = Requirement(dependency)
        except InvalidRequirement:
            logger.debug(f"Ignoring invalid requirement {dependency!r} in {pyproject}")
            continue
        if canonicalize_name(candidate.name) == wanted:
            requirement = candidate
            break

    if requirement is None:
        return finding(
            f"A {package} requirement is not present in pyproject.toml. If there is a "
            f"pyproject.toml, it should require {package}."
        )

    target = parse_version(target_version)
    if requirement.specifier and target is not None and not requirement.specifier.contains(target, prereleases=True):
        return finding(
            f"The {package} requirement {requirement.specifier} in pyproject.toml is not "
            f"compatible with {package} {target_version}."
        )

    return []
