"""Discovery of installed components from their manifests."""

import logging
from pathlib import Path
from typing import Iterable, Protocol

import yaml

from upgrade_status.models import Component

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".info.yml"


class ComponentSource(Protocol):
    """Host service that enumerates installed components."""

    def list_components(self) -> list[Component]:
        ...


class ManifestComponentSource:
    """Finds components by their ``<name>.info.yml`` manifests."""

    def __init__(
        self,
        roots: Iterable[Path],
        enabled: set[str] | None = None,
        platform_paths: Iterable[Path] = (),
    ) -> None:
        """Initialize manifest discovery.

        Args:
            roots: Directories searched recursively for manifests
            enabled: Names of enabled components (None = all enabled)
            platform_paths: Directories holding the platform's own components
        """
        self.roots = [Path(root) for root in roots]
        self.enabled = enabled
        self.platform_paths = [Path(path).resolve() for path in platform_paths]

    def list_components(self) -> list[Component]:
        """List every component found, topmost manifests first.

        Returns:
            List of components
        """
        manifests: set[Path] = set()
        for root in self.roots:
            if not root.is_dir():
                logger.warning(f"Component root does not exist: {root}")
                continue
            manifests.update(path.resolve() for path in root.rglob(f"*{MANIFEST_SUFFIX}"))

        components: list[Component] = []
        for manifest in sorted(manifests, key=lambda p: (len(p.parts), str(p))):
            component = self._load(manifest)
            if component is not None:
                components.append(component)

        return components

    def _load(self, manifest: Path) -> Component | None:
        try:
            with open(manifest, "r", encoding="utf-8") as f:
                info = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Skipping unreadable manifest {manifest}: {e}")
            return None

        if not isinstance(info, dict):
            logger.warning(f"Skipping manifest {manifest}: expected a mapping")
            return None

        name = manifest.name[: -len(MANIFEST_SUFFIX)]
        origin = info.get("origin")
        if origin is None and any(manifest.is_relative_to(p) for p in self.platform_paths):
            origin = "core"

        return Component(
            name=name,
            type=str(info.get("type", "module")),
            path=manifest.parent,
            manifest_path=manifest,
            info=info,
            origin=origin,
            enabled=self.enabled is None or name in self.enabled,
        )
