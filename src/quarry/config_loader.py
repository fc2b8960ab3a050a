"""Load QuarryConfig from quarry.yaml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

from pathlib import Path

from quarry.config import QuarryConfig

_CONFIG_KEYS = (
    "host", "port", "default_room", "relay_url", "debounce_ms",
    "preview_rows", "database", "sample_data", "cascade",
    "query_timeout_seconds", "queue_size", "max_events",
)


def load_config(root: Path, **overrides: object) -> QuarryConfig:
    """Load QuarryConfig from root, optionally merging quarry.yaml.

    Looks for quarry.yaml, quarry.yml, or quarry.toml in root. If found, loads
    and merges with overrides. Overrides take precedence; ``None`` overrides
    are ignored so unset CLI flags fall through to the file.
    """
    file_config = _read_quarry_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    return QuarryConfig(root=root, **merged)


def _read_quarry_config(root: Path) -> dict[str, object]:
    """Read quarry config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("quarry.yaml", "quarry.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "quarry.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_quarry_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_quarry_section(data)


def _flatten_quarry_section(data: dict[str, object]) -> dict[str, object]:
    """Extract quarry.* keys into top-level config, dropping unknown keys."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k != "quarry" and k in _CONFIG_KEYS:
            result[k] = v
    section = data.get("quarry")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _CONFIG_KEYS:
                result[k] = v
    return result
