from pathlib import Path

import pytest

from fuelwatch.common.config_loader import load_all_configs, select_retailers
from fuelwatch.common.errors import ConfigError
from fuelwatch.common.models import RetailerConfig

SETTINGS_YAML = """fetch:
  batch_size: 3
  batch_delay_seconds: 2
  timeout_seconds: 30
  max_attempts: 3
  retry_delay_seconds: 2
  user_agent: "test-agent"
geocoder:
  enabled: true
  endpoint: https://api.postcodes.io
  timeout_seconds: 10
  max_attempts: 2
  rate_per_sec: 5
storage:
  backend: file
  root: ./data/store
persist:
  max_conflict_retries: 3
query:
  default_fuel_types: [E10, E5, B7, SDV]
"""

RETAILERS_YAML = """retailers:
  - name: Asda
    url: https://example.test/asda.json
  - name: BP
    url: https://example.test/bp.json
    enabled: false
"""


def _write_base(base: Path) -> None:
    base.mkdir()
    (base / "settings.yml").write_text(SETTINGS_YAML, encoding="utf-8")
    (base / "retailers.yml").write_text(RETAILERS_YAML, encoding="utf-8")


def test_load_all_configs_from_repo_config_dir():
    bundle = load_all_configs(Path("config"))
    names = [retailer.name for retailer in bundle.retailers]
    assert "Asda" in names
    assert "Shell" in names
    assert not next(r for r in bundle.retailers if r.name == "Shell").enabled
    assert bundle.settings["fetch"]["batch_size"] == 3
    assert bundle.settings["storage"]["backend"] == "file"


def test_load_all_configs_applies_overlay_values(tmp_path: Path):
    base = tmp_path / "base"
    overlay = tmp_path / "overlay"
    _write_base(base)
    overlay.mkdir()
    (overlay / "settings.yml").write_text("fetch:\n  batch_size: 5\ngeocoder:\n  enabled: false\n", encoding="utf-8")

    bundle = load_all_configs(base, overlay_config_dir=overlay)

    assert bundle.settings["fetch"]["batch_size"] == 5
    assert bundle.settings["fetch"]["timeout_seconds"] == 30
    assert bundle.settings["geocoder"]["enabled"] is False
    assert bundle.retailers == (
        RetailerConfig(name="Asda", url="https://example.test/asda.json", enabled=True),
        RetailerConfig(name="BP", url="https://example.test/bp.json", enabled=False),
    )


def test_load_all_configs_ignores_empty_overlay_file(tmp_path: Path):
    base = tmp_path / "base"
    overlay = tmp_path / "overlay"
    _write_base(base)
    overlay.mkdir()
    (overlay / "settings.yml").write_text("", encoding="utf-8")

    bundle = load_all_configs(base, overlay_config_dir=overlay)
    assert bundle.settings["fetch"]["batch_size"] == 3


def test_load_all_configs_rejects_missing_file(tmp_path: Path):
    base = tmp_path / "base"
    base.mkdir()
    (base / "retailers.yml").write_text(RETAILERS_YAML, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_all_configs(base)


def test_select_retailers():
    retailers = (
        RetailerConfig(name="Asda", url="a"),
        RetailerConfig(name="BP", url="b", enabled=False),
        RetailerConfig(name="Tesco", url="t"),
    )
    assert [r.name for r in select_retailers(retailers, None)] == ["Asda", "Tesco"]
    assert [r.name for r in select_retailers(retailers, "tesco")] == ["Tesco"]
    assert select_retailers(retailers, "bp") == ()
