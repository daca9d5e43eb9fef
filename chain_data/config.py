"""
Load config from config.yaml with optional env overrides.
Single source of truth for provider credentials, the node URL, HTTP timeout,
and circuit-breaker tuning.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Defaults if no YAML or env
_DEFAULTS = {
    "providers": {
        "etherscan": {"api_key": "", "default_chain": "1"},
        "coingecko": {"api_key": ""},
        "defillama": {"api_key": ""},
        "node": {"url": ""},
    },
    "http": {"timeout_s": 15.0},
    "circuit_breaker": {"failure_threshold": 3, "recovery_seconds": 60.0},
}

# env var -> (section path, key)
_ENV_KEYS = {
    "ETHERSCAN_API_KEY": (("providers", "etherscan"), "api_key"),
    "COINGECKO_API_KEY": (("providers", "coingecko"), "api_key"),
    "DEFILLAMA_API_KEY": (("providers", "defillama"), "api_key"),
    "ETH_NODE_URL": (("providers", "node"), "url"),
}


def _config_yaml_path() -> Path:
    """config.yaml lives at repo root (parent of package dir) unless CHAIN_DATA_CONFIG is set."""
    override = os.environ.get("CHAIN_DATA_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml(path: Optional[Path] = None) -> dict:
    config_path = path or _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    for env_name, (sections, key) in _ENV_KEYS.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        node = overrides
        for section in sections:
            node = node.setdefault(section, {})
        node[key] = value
    timeout = os.environ.get("CHAIN_DATA_HTTP_TIMEOUT")
    if timeout:
        overrides.setdefault("http", {})["timeout_s"] = float(timeout)
    return overrides


def get_config(path: Optional[Path] = None) -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml(path))
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def provider_settings(name: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    cfg = config if config is not None else get_config()
    return dict(cfg.get("providers", {}).get(name, {}))


def http_timeout_s(config: Optional[Dict[str, Any]] = None) -> float:
    cfg = config if config is not None else get_config()
    return float(cfg["http"]["timeout_s"])


def failure_threshold(config: Optional[Dict[str, Any]] = None) -> int:
    cfg = config if config is not None else get_config()
    return int(cfg["circuit_breaker"]["failure_threshold"])


def recovery_seconds(config: Optional[Dict[str, Any]] = None) -> float:
    cfg = config if config is not None else get_config()
    return float(cfg["circuit_breaker"]["recovery_seconds"])
