"""Configuration management for Upgrade Status."""

import logging
from pathlib import Path
from typing import Any

import toml

from upgrade_status.errors import ConfigurationError

logger = logging.getLogger(__name__)

DISPATCH_STRATEGIES = ("in_process", "loopback")


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class Config:
    """Application configuration."""

    def __init__(self, config_file: Path | None = None) -> None:
        """Initialize configuration.

        Args:
            config_file: Optional path to configuration file
        """
        self.config_file = config_file
        self._config: dict[str, Any] = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file or defaults."""
        config: dict[str, Any] = self._get_defaults()

        if self.config_file and self.config_file.exists():
            try:
                file_config = toml.load(self.config_file)
                _merge(config, file_config)
                logger.debug(f"Loaded config from {self.config_file}")
            except toml.TomlDecodeError as e:
                logger.warning(f"Invalid TOML in config file {self.config_file}: {e}")
            except OSError as e:
                logger.warning(f"Error loading config file {self.config_file}: {e}")

        return config

    @staticmethod
    def _get_defaults() -> dict[str, Any]:
        """Get default configuration values."""
        home = Path.home()

        return {
            "platform": {
                "name": "platform",
                "version": "8.9.0",
                "oldest_supported": "8.7",
                "target_version": "9.0.0",
                "package": None,
            },
            "scan": {
                "batch_size": 30,
                "extensions": [".py"],
                "exclude_patterns": [
                    "**/venv/**",
                    "**/.venv/**",
                    "**/node_modules/**",
                    "**/__pycache__/**",
                    "**/.git/**",
                ],
                "analyzer_command": ["deprecation-analyzer", "--error-format=json"],
                "analyzer_config": None,
                "timeout": 600,
            },
            "categorize": {
                "inclusive_boundary": True,
            },
            "collector": {
                "roots": ["."],
                "platform_paths": [],
                "include_disabled": False,
                "enabled": None,
                "check_disabled_updates": False,
                "contrib_by_directory": True,
            },
            "storage": {
                "directory": str(home / ".upgrade_status"),
            },
            "plans": {
                "url": None,
                "field": "plan",
                "ttl_hours": 24,
            },
            "dispatch": {
                "strategy": "in_process",
                "loopback_url": None,
            },
            "updates": {
                "url": None,
            },
            "cache": {
                "enabled": True,
                "releases_ttl_hours": 24,
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "scan.batch_size")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value: Any = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    @property
    def platform_name(self) -> str:
        return str(self.get("platform.name", "platform"))

    @property
    def platform_version(self) -> str:
        return str(self.get("platform.version", "8.9.0"))

    @property
    def oldest_supported(self) -> str:
        return str(self.get("platform.oldest_supported", "8.7"))

    @property
    def target_version(self) -> str:
        return str(self.get("platform.target_version", "9.0.0"))

    @property
    def platform_package(self) -> str:
        """Distribution name a project must require (defaults to the platform name)."""
        return str(self.get("platform.package") or self.platform_name)

    @property
    def batch_size(self) -> int:
        """Get number of files per analyzer invocation."""
        size = int(self.get("scan.batch_size", 30))
        if size < 1:
            raise ConfigurationError(f"scan.batch_size must be positive, got {size}")
        return size

    @property
    def extensions(self) -> list[str]:
        return list(self.get("scan.extensions", [".py"]))

    @property
    def exclude_patterns(self) -> list[str]:
        """Get file exclusion patterns."""
        return self.get("scan.exclude_patterns", [])

    @property
    def analyzer_command(self) -> list[str]:
        command = self.get("scan.analyzer_command", [])
        if isinstance(command, str):
            command = command.split()
        if not command:
            raise ConfigurationError("scan.analyzer_command is empty")
        return list(command)

    @property
    def analyzer_config(self) -> Path | None:
        value = self.get("scan.analyzer_config")
        return Path(value).expanduser() if value else None

    @property
    def scan_timeout(self) -> float:
        return float(self.get("scan.timeout", 600))

    @property
    def inclusive_boundary(self) -> bool:
        """Whether version ties count as actionable now."""
        return bool(self.get("categorize.inclusive_boundary", True))

    @property
    def collector_roots(self) -> list[Path]:
        base = self.config_file.parent if self.config_file else Path.cwd()
        return [(base / Path(root).expanduser()).resolve() for root in self.get("collector.roots", ["."])]

    @property
    def platform_paths(self) -> list[Path]:
        """Directories holding the platform's own components."""
        base = self.config_file.parent if self.config_file else Path.cwd()
        return [(base / Path(p).expanduser()).resolve() for p in self.get("collector.platform_paths", [])]

    @property
    def include_disabled(self) -> bool:
        return bool(self.get("collector.include_disabled", False))

    @property
    def enabled_components(self) -> set[str] | None:
        """Explicitly enabled component names (None means every component)."""
        enabled = self.get("collector.enabled")
        return set(enabled) if enabled is not None else None

    @property
    def check_disabled_updates(self) -> bool:
        return bool(self.get("collector.check_disabled_updates", False))

    @property
    def contrib_by_directory(self) -> bool:
        """Classify unidentified components under a `contrib` directory as contrib."""
        return bool(self.get("collector.contrib_by_directory", True))

    @property
    def storage_dir(self) -> Path:
        """Get directory holding results, the queue database and the cache."""
        return Path(self.get("storage.directory", "~/.upgrade_status")).expanduser()

    @property
    def results_dir(self) -> Path:
        return self.storage_dir / "results"

    @property
    def queue_db(self) -> Path:
        return self.storage_dir / "queue.db"

    @property
    def cache_dir(self) -> Path:
        """Get cache directory path."""
        return self.storage_dir / "cache"

    @property
    def cache_enabled(self) -> bool:
        """Check if caching is enabled."""
        return bool(self.get("cache.enabled", True))

    @property
    def releases_ttl_hours(self) -> int:
        return int(self.get("cache.releases_ttl_hours", 24))

    @property
    def releases_url(self) -> str | None:
        """Release feed URL with a {name} placeholder (None = cached data only)."""
        return self.get("updates.url")

    @property
    def plans_url(self) -> str | None:
        return self.get("plans.url")

    @property
    def plans_field(self) -> str:
        return str(self.get("plans.field", "plan"))

    @property
    def plans_ttl_hours(self) -> int:
        return int(self.get("plans.ttl_hours", 24))

    @property
    def dispatch_strategy(self) -> str:
        strategy = str(self.get("dispatch.strategy", "in_process"))
        if strategy not in DISPATCH_STRATEGIES:
            raise ConfigurationError(
                f"dispatch.strategy must be one of {', '.join(DISPATCH_STRATEGIES)}, got {strategy!r}"
            )
        return strategy

    @property
    def loopback_url(self) -> str | None:
        return self.get("dispatch.loopback_url")
