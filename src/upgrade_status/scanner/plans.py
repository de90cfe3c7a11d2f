"""Upstream migration plan lookup."""

import logging
from typing import Any, Protocol
from urllib.parse import urlsplit

import httpx

from upgrade_status.cache import Cache
from upgrade_status.errors import AuxiliaryFetchError
from upgrade_status.http_client import SyncHTTPClient
from upgrade_status.models import Project

logger = logging.getLogger(__name__)


class PlanSource(Protocol):
    """Returns the upstream migration plan of a project, if one exists."""

    def fetch_plan(self, project: Project) -> str | None:
        ...


def lookup_field(data: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts and lists.

    Args:
        data: Decoded JSON document
        path: Dotted path, list indexes as integers (e.g. "list.0.plan.value")

    Returns:
        The value, or None if the path does not exist
    """
    value = data
    for key in path.split("."):
        if isinstance(value, dict):
            value = value.get(key)
        elif isinstance(value, list) and key.isdigit() and int(key) < len(value):
            value = value[int(key)]
        else:
            return None
    return value


class UpstreamPlanClient:
    """Fetches migration plans published by upstream maintainers."""

    def __init__(
        self,
        url_template: str,
        field: str = "plan",
        client: SyncHTTPClient | None = None,
        cache: Cache | None = None,
        ttl_hours: int = 24,
    ) -> None:
        """Initialize the plan client.

        Args:
            url_template: Endpoint with a ``{name}`` placeholder
            field: Dotted path of the plan text in the response
            client: HTTP client
            cache: Cache for fetched plans
            ttl_hours: Cache TTL
        """
        self.url_template = url_template
        self.field = field
        self.client = client or SyncHTTPClient(timeout=10.0)
        self.cache = cache
        self.ttl_hours = ttl_hours

    def _fetch(self, name: str) -> str | None:
        url = self.url_template.format(name=name)
        try:
            response = self.client.get(url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AuxiliaryFetchError(f"Plan lookup failed for {name}: {e}") from e

        plan = lookup_field(data, self.field)
        if not isinstance(plan, str) or not plan.strip():
            return None

        # Relative links only make sense on the upstream site.
        parts = urlsplit(url)
        return plan.replace('href="/', f'href="{parts.scheme}://{parts.netloc}/')

    def fetch_plan(self, project: Project) -> str | None:
        """Get the plan of a project (best effort).

        Returns:
            Plan text, or None if there is none or the lookup failed
        """
        if self.cache is not None:
            cached = self.cache.get(project.name, "plans", self.ttl_hours)
            if cached is not None:
                return cached or None

        try:
            plan = self._fetch(project.name)
        except AuxiliaryFetchError as e:
            logger.warning(str(e))
            return None

        if self.cache is not None:
            self.cache.set(project.name, plan or "", "plans")
        return plan
