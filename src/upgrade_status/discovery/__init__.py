"""Project discovery package."""

from upgrade_status.discovery.collector import ProjectCollector
from upgrade_status.discovery.components import ComponentSource, ManifestComponentSource
from upgrade_status.discovery.updates import ReleaseFeedClient, ReleaseSource, resolve_update

__all__ = [
    "ProjectCollector",
    "ComponentSource",
    "ManifestComponentSource",
    "ReleaseSource",
    "ReleaseFeedClient",
    "resolve_update",
]
