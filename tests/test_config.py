"""Tests for configuration loading."""

from pathlib import Path

import pytest

from upgrade_status.config import Config
from upgrade_status.errors import ConfigurationError


class TestConfigDefaults:
    """Test default values."""

    def test_defaults(self):
        config = Config()

        assert config.platform_name == "platform"
        assert config.platform_version == "8.9.0"
        assert config.oldest_supported == "8.7"
        assert config.target_version == "9.0.0"
        assert config.batch_size == 30
        assert config.inclusive_boundary
        assert config.dispatch_strategy == "in_process"
        assert config.enabled_components is None
        assert config.platform_package == "platform"

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        config = Config(tmp_path / "missing.toml")
        assert config.batch_size == 30

    def test_storage_layout(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text(f'[storage]\ndirectory = "{tmp_path.as_posix()}/store"\n')

        config = Config(config_file)

        assert config.results_dir == tmp_path / "store" / "results"
        assert config.queue_db == tmp_path / "store" / "queue.db"
        assert config.cache_dir == tmp_path / "store" / "cache"


class TestConfigFile:
    """Test values read from a TOML file."""

    def test_file_overrides_are_merged(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            "[platform]\n"
            'version = "9.1.0"\n'
            "[scan]\n"
            "batch_size = 10\n"
            'analyzer_command = "my-analyzer --json"\n'
        )

        config = Config(config_file)

        assert config.platform_version == "9.1.0"
        assert config.platform_name == "platform"
        assert config.batch_size == 10
        assert config.analyzer_command == ["my-analyzer", "--json"]
        assert config.get("scan.timeout") == 600

    def test_roots_are_relative_to_config_file(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text('[collector]\nroots = ["site"]\nplatform_paths = ["site/core"]\n')

        config = Config(config_file)

        assert config.collector_roots == [(tmp_path / "site").resolve()]
        assert config.platform_paths == [(tmp_path / "site" / "core").resolve()]

    def test_invalid_toml_falls_back_to_defaults(self, tmp_path: Path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("[scan\nbatch_size = ")

        assert Config(config_file).batch_size == 30

    def test_get_missing_key(self):
        assert Config().get("nothing.here", "fallback") == "fallback"


class TestConfigValidation:
    """Test invalid settings."""

    @pytest.mark.parametrize("content, prop", [
        ("[scan]\nbatch_size = 0\n", "batch_size"),
        ("[scan]\nanalyzer_command = []\n", "analyzer_command"),
        ('[dispatch]\nstrategy = "threads"\n', "dispatch_strategy"),
    ])
    def test_invalid_values(self, tmp_path: Path, content, prop):
        config_file = tmp_path / "config.toml"
        config_file.write_text(content)
        config = Config(config_file)

        with pytest.raises(ConfigurationError):
            getattr(config, prop)
