"""Tests for quarry.config and quarry.config_loader."""

from pathlib import Path

import pytest

from quarry.config import QuarryConfig
from quarry.config_loader import load_config


class TestQuarryConfig:
    """QuarryConfig — frozen dataclass with sensible defaults."""

    def test_defaults(self) -> None:
        config = QuarryConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 1234
        assert config.default_room == "default"
        assert config.relay_url == "ws://localhost:1234"
        assert config.debounce_ms == 300
        assert config.preview_rows == 5
        assert config.database == ":memory:"
        assert config.sample_data is False
        assert config.cascade is False

    def test_frozen(self) -> None:
        config = QuarryConfig()
        with pytest.raises(AttributeError):
            config.port = 8000  # type: ignore[misc]

    def test_root_resolved(self) -> None:
        config = QuarryConfig(root=Path("."))
        assert config.root.is_absolute()

    def test_debounce_seconds(self) -> None:
        assert QuarryConfig(debounce_ms=250).debounce_seconds == 0.25

    def test_memory_database_untouched(self, tmp_path: Path) -> None:
        assert QuarryConfig(root=tmp_path).database_path == ":memory:"

    def test_relative_database_resolves_from_root(self, tmp_path: Path) -> None:
        config = QuarryConfig(root=tmp_path, database="data/notebook.duckdb")
        assert config.database_path == str(tmp_path / "data/notebook.duckdb")

    def test_absolute_database_preserved(self, tmp_path: Path) -> None:
        config = QuarryConfig(root=tmp_path, database="/var/lib/q.duckdb")
        assert config.database_path == "/var/lib/q.duckdb"


class TestLoadConfig:
    """load_config — file discovery, sections and overrides."""

    def test_no_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)
        assert config.root == tmp_path
        assert config.port == 1234

    def test_yaml_top_level_keys(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yaml").write_text("port: 4000\ndefault_room: team\n")
        config = load_config(tmp_path)
        assert config.port == 4000
        assert config.default_room == "team"

    def test_yaml_quarry_section(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yml").write_text("quarry:\n  cascade: true\n  preview_rows: 3\n")
        config = load_config(tmp_path)
        assert config.cascade is True
        assert config.preview_rows == 3

    def test_toml(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.toml").write_text('[quarry]\nhost = "0.0.0.0"\nsample_data = true\n')
        config = load_config(tmp_path)
        assert config.host == "0.0.0.0"
        assert config.sample_data is True

    def test_yaml_preferred_over_toml(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yaml").write_text("port: 1111\n")
        (tmp_path / "quarry.toml").write_text("port = 2222\n")
        assert load_config(tmp_path).port == 1111

    def test_unknown_keys_dropped(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yaml").write_text("port: 4000\ntheme: dark\n")
        assert load_config(tmp_path).port == 4000

    def test_overrides_win(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yaml").write_text("port: 4000\n")
        assert load_config(tmp_path, port=5000).port == 5000

    def test_none_overrides_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yaml").write_text("port: 4000\n")
        assert load_config(tmp_path, port=None, host=None).port == 4000

    def test_invalid_yaml_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yaml").write_text("port: [unclosed\n")
        assert load_config(tmp_path).port == 1234

    def test_non_mapping_yaml_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.yaml").write_text("- just\n- a list\n")
        assert load_config(tmp_path).port == 1234

    def test_invalid_toml_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "quarry.toml").write_text("port = = 1\n")
        assert load_config(tmp_path).port == 1234
