"""Collection of installed components into scannable projects."""

import logging

from upgrade_status.discovery.components import ComponentSource
from upgrade_status.discovery.updates import ReleaseSource, resolve_update
from upgrade_status.errors import AuxiliaryFetchError, ConfigurationError, UnknownProjectError
from upgrade_status.models import (
    NEXT_STEP_INFO,
    Component,
    NextStep,
    NextStepInfo,
    Project,
    ProjectType,
    Report,
    UpdateStatus,
)
from upgrade_status.store import ResultStore
from upgrade_status.versions import satisfies

logger = logging.getLogger(__name__)

PROFILE = "profile"


class ProjectCollector:
    """Groups installed components into custom and contrib projects.

    Projects are recomputed from the component source on every call.
    """

    def __init__(
        self,
        source: ComponentSource,
        result_store: ResultStore,
        release_source: ReleaseSource | None = None,
        platform_name: str = "platform",
        target_version: str = "9.0.0",
        include_disabled: bool = False,
        check_disabled_updates: bool = False,
        contrib_by_directory: bool = True,
    ) -> None:
        """Initialize the collector.

        Args:
            source: Enumerates installed components
            result_store: Stored reports, used to carry over next steps
            release_source: Update checker for contrib projects
            platform_name: Platform identifier; components declaring it as
                their project are developed against a platform checkout
            target_version: Platform version the upgrade targets
            include_disabled: Keep disabled components that are not profiles
            check_disabled_updates: Missing release data means "not available"
            contrib_by_directory: Treat components without an identifier that
                live under a `contrib` directory as contrib
        """
        self.source = source
        self.result_store = result_store
        self.release_source = release_source
        self.platform_name = platform_name
        self.target_version = target_version
        self.include_disabled = include_disabled
        self.check_disabled_updates = check_disabled_updates
        self.contrib_by_directory = contrib_by_directory

    def collect(self) -> dict[str, list[Project]]:
        """Collect projects grouped by type.

        Returns:
            Dictionary with "custom" and "contrib" project lists
        """
        grouped: dict[str, list[Project]] = {t.value: [] for t in ProjectType}
        for project in self.collect_projects().values():
            grouped[project.type.value].append(project)
        return grouped

    def collect_projects(self) -> dict[str, Project]:
        """Collect projects keyed by name."""
        projects: dict[str, Project] = {}
        representatives: dict[str, str] = {}

        for component in self.source.list_components():
            if component.origin == "core":
                continue
            if not component.enabled and component.type != PROFILE and not self.include_disabled:
                continue

            identifier = component.project
            # Components developed in a platform checkout share its identifier.
            if identifier == self.platform_name:
                identifier = None
            if identifier and identifier in representatives:
                self._propagate(projects[representatives[identifier]], component.enabled, component.constraint)
                continue

            project = self._to_project(component)
            projects[project.name] = project
            if identifier:
                representatives[identifier] = project.name

        projects = self._collate(projects)

        for project in projects.values():
            if project.is_contrib:
                self._attach_update(project)
            project.next_step = self._next_step(project)

        return projects

    def _is_compatible(self, constraint: str | None) -> bool:
        return constraint is not None and satisfies(self.target_version, constraint)

    def _propagate(self, representative: Project, enabled: bool, constraint: str | None) -> None:
        """Fold a sibling's compatibility into its representative."""
        if representative.compatible and enabled:
            representative.compatible = self._is_compatible(constraint)

    def _to_project(self, component: Component) -> Project:
        identifier = component.project
        if identifier == self.platform_name:
            project_type = ProjectType.CUSTOM
        elif identifier:
            project_type = ProjectType.CONTRIB
        elif self.contrib_by_directory and "contrib" in component.path.parts[:-1]:
            project_type = ProjectType.CONTRIB
        else:
            project_type = ProjectType.CUSTOM

        return Project(
            name=component.name,
            label=component.label,
            path=component.path,
            type=project_type,
            version=component.version,
            manifest_path=component.manifest_path,
            constraint=component.constraint,
            compatible=self._is_compatible(component.constraint),
            enabled=component.enabled,
            component_type=component.type,
        )

    def _collate(self, projects: dict[str, Project]) -> dict[str, Project]:
        """Fold nested custom projects into their topmost ancestor."""
        custom = sorted(
            (p for p in projects.values() if p.type == ProjectType.CUSTOM),
            key=lambda p: len(p.path.parts),
        )
        removed: set[str] = set()

        for ancestor in custom:
            if ancestor.name in removed:
                continue
            for nested in custom:
                if nested.name == ancestor.name or nested.name in removed:
                    continue
                if nested.path.is_relative_to(ancestor.path):
                    self._propagate(ancestor, nested.enabled, nested.constraint)
                    removed.add(nested.name)
                    logger.debug(f"Folded {nested.name} into {ancestor.name}")

        return {name: p for name, p in projects.items() if name not in removed}

    def _attach_update(self, project: Project) -> None:
        release_data = None
        if self.release_source is not None:
            try:
                release_data = self.release_source.get_releases(project.name)
            except AuxiliaryFetchError as e:
                logger.warning(str(e))
                project.update_status = UpdateStatus.NOT_CHECKED
                return

        status, version, link = resolve_update(
            project.version,
            release_data,
            self.target_version,
            self.check_disabled_updates,
        )
        project.update_status = status
        project.update_version = version
        project.update_link = link

    def _next_step(self, project: Project) -> NextStep:
        """Pick the suggested next step, first match wins."""
        if project.compatible and project.is_contrib:
            return NextStep.RELAX
        if not project.enabled:
            return NextStep.REMOVE
        if project.update_status in (UpdateStatus.COMPATIBLE_UPDATE, UpdateStatus.INCOMPATIBLE_UPDATE):
            return NextStep.UPDATE
        if project.is_contrib:
            return NextStep.COLLABORATE

        report = self.get_results(project.name)
        if report is None or report.totals.next_step is None:
            return NextStep.SCAN
        return report.totals.next_step

    def load_project(self, name: str, project_type: str | ProjectType | None = None) -> Project:
        """Load a single project by name.

        Args:
            name: Project name
            project_type: Optional expected type ("custom" or "contrib")

        Returns:
            The project

        Raises:
            ConfigurationError: If the project type is not valid
            UnknownProjectError: If no such project was collected
        """
        expected: ProjectType | None = None
        if project_type is not None:
            try:
                expected = ProjectType(project_type)
            except ValueError:
                raise ConfigurationError(f"Invalid project type: {project_type}") from None

        project = self.collect_projects().get(name)
        if project is None or (expected is not None and project.type != expected):
            raise UnknownProjectError(name)
        return project

    def get_results(self, name: str) -> Report | None:
        """Get the stored report of a project, if any."""
        return self.result_store.get(name)

    @staticmethod
    def next_step_info() -> dict[NextStep, NextStepInfo]:
        """Labels, descriptions and summary groups of every next step."""
        return dict(NEXT_STEP_INFO)
