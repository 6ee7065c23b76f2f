from __future__ import annotations

from pathlib import Path

import pytest

from govcon_scout.config import AppConfig, WeightsConfig, config_path, load_config
from govcon_scout.qualify import ALTERNATE_WEIGHTS, DEFAULT_WEIGHTS


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "absent.toml")

    assert config.profile.preferred_regions == ["MI", "CA"]
    assert config.profile.disqualifying_set_asides[0] == "SDVOSB"
    assert config.sam.api_key is None
    assert config.scoring_weights() is DEFAULT_WEIGHTS


def test_toml_values_merge_over_defaults(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        """
log_level = "DEBUG"

[profile]
naics_codes = ["333249"]
preferred_regions = [" oh ", "mi"]

[company]
name = "Lakeshore Robotics"
certifications = ["Small Business"]

[sam]
posted_days = 30
"""
    )

    config = load_config(path)

    assert config.log_level == "DEBUG"
    assert config.profile.naics_codes == ["333249"]
    assert config.profile.preferred_regions == ["OH", "MI"]
    assert "robotic" in config.profile.keywords
    assert config.company.name == "Lakeshore Robotics"
    assert config.sam.posted_days == 30
    assert config.sam.limit == 15


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("SAM_API_KEY", " sam-key ")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
    monkeypatch.setenv("GOVCON_SCOUT_LOG_LEVEL", "WARNING")

    config = load_config(tmp_path / "absent.toml")

    assert config.sam.api_key == "sam-key"
    assert config.ai.api_key == "sk-ant-test"
    assert config.log_level == "WARNING"


def test_eligibility_profile_is_ordered_tuples():
    profile = AppConfig().eligibility_profile()

    assert isinstance(profile.match_keywords, tuple)
    assert profile.disqualifying_set_asides.index("SDVOSB") < profile.disqualifying_set_asides.index(
        "VOSB"
    )
    assert profile.preferred_regions == ("MI", "CA")


def test_alternate_table_and_overrides():
    config = AppConfig(weights=WeightsConfig(table="alternate", overrides={"region_match": 5}))

    weights = config.scoring_weights()

    assert weights.value_5m == ALTERNATE_WEIGHTS.value_5m
    assert weights.region_match == 5


def test_unknown_weights_table():
    config = AppConfig(weights=WeightsConfig(table="aggressive"))

    with pytest.raises(ValueError, match="aggressive"):
        config.scoring_weights()


def test_weights_table_from_toml(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[weights]\ntable = "alternate"\n')

    assert load_config(path).scoring_weights() is ALTERNATE_WEIGHTS


def test_config_path_precedence(monkeypatch):
    assert config_path(None) == Path("config.toml")

    monkeypatch.setenv("GOVCON_SCOUT_CONFIG", "/etc/govcon/config.toml")
    assert config_path(None) == Path("/etc/govcon/config.toml")
    assert config_path("local.toml") == Path("local.toml")


def test_unknown_weights_override_is_reported():
    config = AppConfig(weights=WeightsConfig(overrides={"naics": 40, "region_match": 5}))

    with pytest.raises(ValueError, match="Unknown weights override\\(s\\): naics"):
        config.scoring_weights()


def test_unknown_config_key_is_a_value_error(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[sam]\napi_token = "abc"\n')

    with pytest.raises(ValueError, match="Invalid config"):
        load_config(path)
