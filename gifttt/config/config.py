#config/config.py
from pathlib import Path
from typing import Union
import os
import tomlkit
import logging

from gifttt.core.exceptions import ConfigError

_log = logging.getLogger(__name__)

# defaults.toml path
DEFAULTS_PATH = Path(__file__).resolve().parent / "defaults.toml"
SYSTEM_CONFIG_PATH = Path(os.environ.get("GIFTTT_CONFIG", "/etc/gifttt/config.toml"))


def _load_toml(path: Path) -> dict:
    """Load a TOML file as plain Python types; missing or invalid files yield {}."""
    if not path.exists():
        _log.warning("Config file not found: %s", path)
        return {}
    try:
        data = tomlkit.loads(path.read_text(encoding="utf-8")).unwrap()
        _log.debug("Loaded config from %s", path)
        return data
    except Exception:
        _log.exception("Failed to parse TOML: %s", path)
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge the override dictionary into the base dictionary."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def validate_config(cfg: dict) -> dict:
    """
    Check the types and ranges of the settings the engine reads.

    Raises:
        ConfigError: on the first invalid setting.
    """
    def section(name: str) -> dict:
        value = cfg.get(name, {})
        if not isinstance(value, dict):
            raise ConfigError(f"[{name}] must be a table")
        return value

    main = section("main")
    for key in ("rules_dir", "rule_suffix"):
        if key in main and not isinstance(main[key], str):
            raise ConfigError(f"main.{key} must be a string")

    store = section("store")
    for key in ("path", "prefix"):
        if key in store and not isinstance(store[key], str):
            raise ConfigError(f"store.{key} must be a string")

    clock = section("clock")
    interval = clock.get("interval", 1.0)
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval <= 0:
        raise ConfigError("clock.interval must be a positive number")

    limit = section("dispatch").get("max_concurrent_batches", 0)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise ConfigError("dispatch.max_concurrent_batches must be a non-negative integer")

    level = section("log").get("level", "INFO")
    if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
        raise ConfigError(f"log.level is not a logging level: {level!r}")

    return cfg


def load_config(system_path: Union[Path, str, None] = None) -> dict:
    """
    Load defaults.toml and merge the optional system config over it.

    Args:
        system_path (Path, optional): Path to a system configuration file. If None,
                                       the default system config path is used.

    Returns:
        dict: The merged, validated configuration.
    """
    cfg = _load_toml(DEFAULTS_PATH)

    sys_path = Path(system_path) if system_path else SYSTEM_CONFIG_PATH
    sys_cfg = _load_toml(sys_path)

    if sys_cfg:
        cfg = _deep_merge(cfg, sys_cfg)

    return validate_config(cfg)
