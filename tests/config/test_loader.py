"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- load_config() precedence: kwargs > env > .rxmigrate.yaml > defaults
- validation failures surfacing as ConfigError
"""

from __future__ import annotations

from pathlib import Path

import pytest

from rxmigrate.config.loader import CONFIG_FILE_NAME, _load_yaml, load_config
from rxmigrate.config.models import MigrationConfig
from rxmigrate.core.errors import ConfigError, ErrorCode


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("logging:\n  level: DEBUG\n")

        assert _load_yaml(yaml_file) == {"logging": {"level": "DEBUG"}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("logging:\n  level:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            _load_yaml(yaml_file)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)

        assert isinstance(config, MigrationConfig)
        assert config.root_directory == tmp_path
        assert config.preview_only is False
        assert config.max_parallel_files == 5
        assert config.report_format == "text"

    def test_reads_project_yaml(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text(
            "preview_only: true\nvalidation:\n  timeout_sec: 12\n"
        )

        config = load_config(tmp_path)

        assert config.preview_only is True
        assert config.validation.timeout_sec == 12

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text("max_parallel_files: 3\n")
        monkeypatch.setenv("RXMIGRATE__MAX_PARALLEL_FILES", "8")

        config = load_config(tmp_path)

        assert config.max_parallel_files == 8

    def test_nested_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RXMIGRATE__GENERATION__HELPERS_MODULE", "@app/rx-utils")

        config = load_config(tmp_path)

        assert config.generation.helpers_module == "@app/rx-utils"

    def test_kwargs_override_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RXMIGRATE__STOP_ON_FIRST_ERROR", "true")

        config = load_config(tmp_path, stop_on_first_error=False)

        assert config.stop_on_first_error is False

    def test_invalid_value_raises_config_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path, max_parallel_files=0)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc_info.value.details["field"] == "max_parallel_files"

    def test_invalid_report_format(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(tmp_path, report_format="html")
