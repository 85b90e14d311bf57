"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fuelwatch.common.errors import ConfigError
from fuelwatch.common.fs import read_yaml
from fuelwatch.common.models import RetailerConfig
from fuelwatch.common.schema import validate_retailers_config, validate_settings_config


@dataclass(frozen=True)
class ConfigBundle:
    retailers: tuple[RetailerConfig, ...]
    settings: dict


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    return _deep_merge(base, overlay)


def build_retailer_configs(cfg: dict) -> tuple[RetailerConfig, ...]:
    return tuple(
        RetailerConfig(
            name=entry["name"].strip(),
            url=str(entry["url"]),
            enabled=bool(entry.get("enabled", True)),
        )
        for entry in cfg["retailers"]
    )


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    def _overlay(name: str) -> Path | None:
        if overlay_config_dir is None:
            return None
        return overlay_config_dir / name

    retailers_cfg = validate_retailers_config(
        _load_yaml_with_overlay(config_dir / "retailers.yml", _overlay("retailers.yml")),
        allow_unknown=allow_unknown,
    )
    settings = validate_settings_config(
        _load_yaml_with_overlay(config_dir / "settings.yml", _overlay("settings.yml")),
        allow_unknown=allow_unknown,
    )
    return ConfigBundle(retailers=build_retailer_configs(retailers_cfg), settings=settings)


def select_retailers(retailers: tuple[RetailerConfig, ...], name: str | None) -> tuple[RetailerConfig, ...]:
    """Enabled retailers, optionally narrowed to one exact (case-insensitive) name."""
    enabled = tuple(r for r in retailers if r.enabled)
    if not name:
        return enabled
    wanted = name.strip().lower()
    return tuple(r for r in enabled if r.name.lower() == wanted)
