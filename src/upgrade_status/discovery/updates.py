"""Available-update lookup for contrib projects."""

import logging
from typing import Any, Protocol

import httpx

from upgrade_status.cache import Cache
from upgrade_status.errors import AuxiliaryFetchError
from upgrade_status.http_client import SyncHTTPClient
from upgrade_status.models import UpdateStatus
from upgrade_status.versions import satisfies

logger = logging.getLogger(__name__)


class ReleaseSource(Protocol):
    """Host update checker returning release data for a project.

    Release data has the shape
    ``{"link": str, "releases": [{"version": str, "core_compatibility": str}]}``
    with the latest release first.
    """

    def get_releases(self, project: str) -> dict[str, Any] | None:
        ...


class ReleaseFeedClient:
    """Reads release data from the cache, fetching it from a feed on a miss."""

    def __init__(
        self,
        cache: Cache,
        url_template: str | None = None,
        client: SyncHTTPClient | None = None,
        ttl_hours: int = 24,
    ) -> None:
        """Initialize release lookup.

        Args:
            cache: Disk cache holding release data
            url_template: Feed URL with a ``{name}`` placeholder (None = cache only)
            client: HTTP client used for the feed
            ttl_hours: Cache TTL
        """
        self.cache = cache
        self.url_template = url_template
        self.client = client
        self.ttl_hours = ttl_hours

    def get_releases(self, project: str) -> dict[str, Any] | None:
        cached = self.cache.get(project, "releases", self.ttl_hours)
        if cached is not None or not self.url_template:
            return cached

        client = self.client or SyncHTTPClient()
        url = self.url_template.format(name=project)
        try:
            response = client.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AuxiliaryFetchError(f"Release lookup failed for {project}: {e}") from e

        self.cache.set(project, data, "releases")
        return data

    def store_releases(self, project: str, data: dict[str, Any]) -> None:
        """Record release data reported by the host update checker."""
        self.cache.set(project, data, "releases")


def resolve_update(
    installed_version: str | None,
    release_data: dict[str, Any] | None,
    target_version: str,
    check_disabled: bool = False,
) -> tuple[UpdateStatus, str | None, str | None]:
    """Work out update availability from release data.

    Args:
        installed_version: Version currently installed
        release_data: Release data (None if never fetched)
        target_version: Platform version the upgrade targets
        check_disabled: Whether the host checks updates for every project,
            so missing data means "not available" rather than "not checked"

    Returns:
        Tuple of (status, update version, update link)
    """
    releases = (release_data or {}).get("releases")
    if not releases:
        status = UpdateStatus.NOT_AVAILABLE if check_disabled else UpdateStatus.NOT_CHECKED
        return status, None, None

    latest = releases[0]
    latest_version = str(latest.get("version", ""))

    if installed_version is not None and latest_version == installed_version:
        return UpdateStatus.ALREADY_LATEST, None, None

    status = UpdateStatus.INCOMPATIBLE_UPDATE
    if satisfies(target_version, latest.get("core_compatibility")):
        status = UpdateStatus.COMPATIBLE_UPDATE

    link = release_data.get("link")
    if link:
        link = f"{link}/releases/{latest_version}"

    return status, latest_version, link
