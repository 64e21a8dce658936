"""Configuration loader with per-profile overrides.

Usage:
  from brandkit.config_loader import load_config
  cfg = load_config("dark_site")  # merges base config.yml with config_dark_site.yml if present

Merge rules:
  - Shallow merge for top-level keys (profile file overrides base).
  - For mapping values under 'colors', 'size_caps_kb' and 'encoding', perform
    key-wise override (deep one level).
  - Missing file -> ignored.
  - Environment variable BRANDKIT_PROFILE overrides the requested profile.
"""
from __future__ import annotations

import logging
import os
from typing import Any

import yaml

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
NESTED_KEYS = ("colors", "size_caps_kb", "encoding")

logger = logging.getLogger(__name__)


def _read_yaml(path: str) -> dict[str, Any]:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, encoding="utf-8") as fp:
            data = yaml.safe_load(fp)
        return data if isinstance(data, dict) else {}
    except yaml.YAMLError as exc:
        logger.warning("Failed to parse YAML in %s: %s, using empty config", path, exc)
        return {}
    except OSError as exc:
        logger.warning("Failed to read %s: %s, using empty config", path, exc)
        return {}


def _merge_mapping(base: Any, override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base) if isinstance(base, dict) else {}
    for k, v in override.items():
        out[k] = v
    return out


def load_config(profile: str | None = None, root: str | None = None) -> dict[str, Any]:
    """Load base config.yml and merge a profile-specific override if present.

    Profile file pattern: config_<profile>.yml under ``root`` (the repository
    root by default). If BRANDKIT_PROFILE is set, it supersedes ``profile``.
    """
    root = root or ROOT
    env_profile = os.getenv("BRANDKIT_PROFILE")
    if env_profile:
        profile = env_profile
    profile = (profile or "").strip().lower()
    base_cfg = _read_yaml(os.path.join(root, "config.yml"))
    if not profile:
        return base_cfg
    profile_cfg = _read_yaml(os.path.join(root, f"config_{profile}.yml"))
    if not profile_cfg:
        logger.warning("Profile %r has no config_%s.yml under %s; using base config", profile, profile, root)
        return base_cfg
    merged = dict(base_cfg)
    for k, v in profile_cfg.items():
        if k in NESTED_KEYS and isinstance(v, dict):
            merged[k] = _merge_mapping(base_cfg.get(k), v)
        else:
            merged[k] = v
    return merged


__all__ = ["load_config"]
