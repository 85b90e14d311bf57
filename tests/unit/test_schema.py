import copy

import pytest

from fuelwatch.common.errors import ConfigError
from fuelwatch.common.schema import validate_retailers_config, validate_settings_config

BASE_SETTINGS = {
    "fetch": {
        "batch_size": 3,
        "batch_delay_seconds": 2,
        "timeout_seconds": 30,
        "max_attempts": 3,
        "retry_delay_seconds": 2,
        "user_agent": "x",
    },
    "geocoder": {"enabled": True, "endpoint": "x", "timeout_seconds": 10, "max_attempts": 2, "rate_per_sec": 5},
    "storage": {"backend": "file", "root": "./data/store"},
    "persist": {"max_conflict_retries": 3},
    "query": {"default_fuel_types": ["E10"]},
}


def test_validate_settings_accepts_valid_shape():
    validated = validate_settings_config(copy.deepcopy(BASE_SETTINGS))
    assert validated["storage"]["backend"] == "file"


def test_validate_settings_rejects_unknown_key_by_default():
    bad = copy.deepcopy(BASE_SETTINGS)
    bad["unexpected"] = True
    with pytest.raises(ConfigError):
        validate_settings_config(bad)
    validate_settings_config(bad, allow_unknown=True)


def test_validate_settings_rejects_unknown_backend():
    bad = copy.deepcopy(BASE_SETTINGS)
    bad["storage"]["backend"] = "s3"
    with pytest.raises(ConfigError):
        validate_settings_config(bad)


def test_validate_settings_requires_github_section_for_github_backend():
    bad = copy.deepcopy(BASE_SETTINGS)
    bad["storage"]["backend"] = "github"
    with pytest.raises(ConfigError):
        validate_settings_config(bad)

    bad["storage"]["github"] = {"owner": "o", "repo": "r", "branch": "main", "token_env": "GITHUB_TOKEN"}
    validate_settings_config(bad)


@pytest.mark.parametrize("value", [0, -1, "3", True])
def test_validate_settings_rejects_bad_batch_size(value):
    bad = copy.deepcopy(BASE_SETTINGS)
    bad["fetch"]["batch_size"] = value
    with pytest.raises(ConfigError):
        validate_settings_config(bad)


def test_validate_retailers_rejects_duplicate_names():
    cfg = {"retailers": [{"name": "Asda", "url": "a"}, {"name": "asda", "url": "b"}]}
    with pytest.raises(ConfigError):
        validate_retailers_config(cfg)


def test_validate_retailers_rejects_non_boolean_enabled():
    with pytest.raises(ConfigError):
        validate_retailers_config({"retailers": [{"name": "Asda", "url": "a", "enabled": "yes"}]})


def test_validate_retailers_rejects_empty_list():
    with pytest.raises(ConfigError):
        validate_retailers_config({"retailers": []})
