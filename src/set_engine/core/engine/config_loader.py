"""
YAML → typed tunables loader.

Loads protocol heuristics from tunables.yaml (bundled with the package) and
optionally merges user overrides from ~/.set-engine/tunables.yaml.

Usage:
    from set_engine.core.engine.config_loader import load_strategy_params
    params = load_strategy_params()
    mav = params["mav"]            # MavParams
    mav.decline_threshold          # 0.8 unless overridden

If the bundled YAML cannot be parsed, all lookups fall back to the Python
defaults from config.py.  If the user override file exists but has parse
errors, a warning is logged and the file is ignored.
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
from pathlib import Path
from typing import Any

import structlog
import yaml

from ..config import DropSetParams, MavParams, MyoRepsParams, PyramidalParams, RestPauseParams

logger = structlog.get_logger(__name__)

# Section name in the YAML file → params dataclass
PARAMS_SECTIONS: dict[str, type] = {
    "drop": DropSetParams,
    "myo_reps": MyoRepsParams,
    "mav": MavParams,
    "rest_pause": RestPauseParams,
    "pyramidal": PyramidalParams,
}

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; return {} when it is unreadable or not a mapping."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable tunables file", path=str(path), error=str(exc))
        return {}
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled tunables.yaml, or None if not found."""
    try:
        ref = importlib.resources.files("set_engine").joinpath("tunables.yaml")
        if ref.is_file():
            return Path(str(ref))
    except (ModuleNotFoundError, TypeError, AttributeError, ValueError):
        pass
    # Fallback: config_loader.py lives at src/set_engine/core/engine/
    candidate = Path(__file__).parent.parent.parent / "tunables.yaml"
    return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.set-engine/tunables.yaml if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / ".set-engine" / "tunables.yaml"
    return p if p.exists() else None


def load_model_config(extra_path: Path | None = None) -> dict[str, Any]:
    """
    Load and merge tunables from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/set_engine/tunables.yaml
    2. User override at ~/.set-engine/tunables.yaml
    3. ``extra_path`` if given (e.g. from the CLI)

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = _deep_merge(config, _load_yaml_file(bundled))

    for path in (get_user_yaml_path(), extra_path):
        if path is None:
            continue
        user_cfg = _load_yaml_file(path)
        if user_cfg:
            config = _deep_merge(config, user_cfg)

    return config


def params_from_dict(params_cls: type, data: dict[str, Any]) -> Any:
    """
    Build a params dataclass from a YAML section.

    Raises:
        ValueError: On unknown keys or values the dataclass rejects
    """
    known = {f.name: f for f in dataclasses.fields(params_cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(f"{params_cls.__name__}: unknown keys {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        default = known[key].default
        try:
            if isinstance(default, tuple):
                if not isinstance(value, (list, tuple)):
                    raise TypeError(f"expected a list, got {value!r}")
                value = tuple(float(v) for v in value)
            elif isinstance(default, bool):
                value = bool(value)
            elif isinstance(default, int):
                value = int(value)
            elif isinstance(default, float):
                value = float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{params_cls.__name__}.{key}: invalid value {value!r} ({e})") from e
        kwargs[key] = value
    return params_cls(**kwargs)


def load_strategy_params(extra_path: Path | None = None) -> dict[str, Any]:
    """
    Return {set_type: params} with YAML overrides applied.

    Sections that are missing from every YAML source use the dataclass
    defaults.
    """
    config = load_model_config(extra_path)
    result: dict[str, Any] = {}
    for section, params_cls in PARAMS_SECTIONS.items():
        raw = config.get(section) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"tunables section '{section}' must be a mapping")
        result[section] = params_from_dict(params_cls, raw)
    return result
