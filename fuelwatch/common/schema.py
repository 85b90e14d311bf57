"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from fuelwatch.common.errors import ConfigError

STORAGE_BACKENDS = {"file", "github"}


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(obj: dict, key: str, ctx: str, *, allow_zero: bool = False) -> None:
    value = obj[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx}.{key} must be a number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{ctx}.{key} must be {'non-negative' if allow_zero else 'positive'}")


def validate_retailers_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "retailers config")
    _assert_required_keys(cfg, {"retailers"}, "retailers config")
    _assert_no_unknown_keys(cfg, {"retailers"}, "retailers config", allow_unknown)

    retailers = cfg["retailers"]
    if not isinstance(retailers, list) or not retailers:
        raise ConfigError("retailers must be a non-empty list")

    names: list[str] = []
    for idx, entry in enumerate(retailers):
        ctx = f"retailers[{idx}]"
        entry = _assert_mapping(entry, ctx)
        _assert_required_keys(entry, {"name", "url"}, ctx)
        _assert_no_unknown_keys(entry, {"name", "url", "enabled"}, ctx, allow_unknown)
        if not isinstance(entry["name"], str) or not entry["name"].strip():
            raise ConfigError(f"{ctx}.name must be a non-empty string")
        if not isinstance(entry.get("enabled", True), bool):
            raise ConfigError(f"{ctx}.enabled must be a boolean")
        names.append(entry["name"].strip().lower())

    dupes = {name for name in names if names.count(name) > 1}
    if dupes:
        raise ConfigError(f"Duplicate retailer names: {', '.join(sorted(dupes))}")

    return cfg


def validate_settings_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"fetch", "geocoder", "storage", "persist", "query"}
    cfg = _assert_mapping(cfg, "settings config")
    _assert_required_keys(cfg, top_required, "settings config")
    _assert_no_unknown_keys(cfg, top_required, "settings config", allow_unknown)

    fetch_keys = {
        "batch_size",
        "batch_delay_seconds",
        "timeout_seconds",
        "max_attempts",
        "retry_delay_seconds",
        "user_agent",
    }
    fetch = _assert_mapping(cfg["fetch"], "fetch")
    _assert_required_keys(fetch, fetch_keys, "fetch")
    _assert_no_unknown_keys(fetch, fetch_keys, "fetch", allow_unknown)
    for key in ("batch_size", "timeout_seconds", "max_attempts"):
        _assert_positive_number(fetch, key, "fetch")
    for key in ("batch_delay_seconds", "retry_delay_seconds"):
        _assert_positive_number(fetch, key, "fetch", allow_zero=True)

    geocoder_keys = {"enabled", "endpoint", "timeout_seconds", "max_attempts", "rate_per_sec"}
    geocoder = _assert_mapping(cfg["geocoder"], "geocoder")
    _assert_required_keys(geocoder, geocoder_keys, "geocoder")
    _assert_no_unknown_keys(geocoder, geocoder_keys, "geocoder", allow_unknown)

    storage = _assert_mapping(cfg["storage"], "storage")
    _assert_required_keys(storage, {"backend", "root"}, "storage")
    _assert_no_unknown_keys(storage, {"backend", "root", "github"}, "storage", allow_unknown)
    if storage["backend"] not in STORAGE_BACKENDS:
        raise ConfigError(f"storage.backend must be one of: {', '.join(sorted(STORAGE_BACKENDS))}")
    if storage["backend"] == "github":
        github = _assert_mapping(storage.get("github"), "storage.github")
        _assert_required_keys(github, {"owner", "repo", "branch", "token_env"}, "storage.github")

    persist = _assert_mapping(cfg["persist"], "persist")
    _assert_required_keys(persist, {"max_conflict_retries"}, "persist")
    _assert_positive_number(persist, "max_conflict_retries", "persist")

    query = _assert_mapping(cfg["query"], "query")
    _assert_required_keys(query, {"default_fuel_types"}, "query")
    if not isinstance(query["default_fuel_types"], list) or not query["default_fuel_types"]:
        raise ConfigError("query.default_fuel_types must be a non-empty list")

    return cfg
