from constants import *
import copy
import yaml
import os

import logging

# Retrieve main logger
logger = logging.getLogger("main")

# Cache variable
_cached_settings = None


def _deep_merge(base, override):
    merged = copy.deepcopy(base)
    for section, values in (override or {}).items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section] = _deep_merge(merged[section], values)
        else:
            merged[section] = values
    return merged


def _apply_env_overrides(settings):
    if os.environ.get("DATABASE_URL"):
        settings["database"]["url"] = os.environ["DATABASE_URL"]
    if os.environ.get("REDIS_URL"):
        settings["redis"]["url"] = os.environ["REDIS_URL"]
    if os.environ.get("OPENAI_API_KEY"):
        settings["sources"]["oracle_api_key"] = os.environ["OPENAI_API_KEY"]
    return settings


def load_settings(force=False, config_file=CONFIG_FILE):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            file_settings = yaml.safe_load(yaml_file) or {}

        # Deep merge with defaults to ensure new keys are present
        settings = _deep_merge(DEFAULT_SETTINGS, file_settings)
    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        try:
            os.makedirs(os.path.dirname(config_file), exist_ok=True)
            with open(config_file, "w") as yaml_file:
                yaml.dump(settings, yaml_file)
        except OSError as e:
            logger.warning(f"Could not write default configuration to {config_file}: {e}")

    _cached_settings = _apply_env_overrides(settings)
    return _cached_settings


def get_cache_ttl(domain, settings=None):
    """TTL in seconds for a cache domain, honouring per-domain overrides"""
    settings = settings or load_settings()
    overrides = settings.get("cache", {}).get("ttl") or {}
    return int(overrides.get(domain, CACHE_TTL.get(domain, CACHE_TTL["generic"])))


def merge_settings(overrides):
    """Defaults deep-merged with an in-memory override dict, no file involved"""
    return _apply_env_overrides(_deep_merge(DEFAULT_SETTINGS, overrides))
