"""Tests for gifttt.config — TOML defaults, overrides and validation."""
import pytest

from gifttt.config import load_config, validate_config
from gifttt.core.exceptions import ConfigError


def test_defaults(tmp_path):
    cfg = load_config(tmp_path / "missing.toml")
    assert cfg["main"]["rule_suffix"] == ".rule"
    assert cfg["store"]["prefix"] == "var~"
    assert cfg["clock"] == {"enabled": True, "interval": 1.0}
    assert cfg["dispatch"]["max_concurrent_batches"] == 0


def test_override_is_merged(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[main]\nrules_dir = "/srv/rules"\n\n[clock]\nenabled = false\n')

    cfg = load_config(path)
    assert cfg["main"]["rules_dir"] == "/srv/rules"
    assert cfg["main"]["rule_suffix"] == ".rule"
    assert cfg["clock"]["enabled"] is False
    assert cfg["clock"]["interval"] == 1.0


def test_unparsable_override_is_ignored(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[main\nrules_dir = ")
    assert load_config(path)["main"]["rules_dir"] == "."


def test_invalid_override(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[clock]\ninterval = 0\n")
    with pytest.raises(ConfigError, match="clock.interval"):
        load_config(path)


@pytest.mark.parametrize("cfg, message", [
    ({"main": "x"}, r"\[main\] must be a table"),
    ({"main": {"rules_dir": 3}}, "main.rules_dir"),
    ({"store": {"prefix": None}}, "store.prefix"),
    ({"clock": {"interval": -1}}, "clock.interval"),
    ({"clock": {"interval": True}}, "clock.interval"),
    ({"dispatch": {"max_concurrent_batches": -1}}, "max_concurrent_batches"),
    ({"dispatch": {"max_concurrent_batches": 1.5}}, "max_concurrent_batches"),
    ({"log": {"level": "LOUD"}}, "log.level"),
])
def test_validate_rejects(cfg, message):
    with pytest.raises(ConfigError, match=message):
        validate_config(cfg)


def test_validate_accepts_empty():
    assert validate_config({}) == {}
