"""Parameter resolution: CLI > ENV (``ICON_BINGO_*``) > config file > defaults."""

from __future__ import annotations

import copy
import hashlib
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ValidationError
from .layout import LayoutOptions
from .models import DEFAULT_TITLE, Difficulty, GenerationRequest, IconDistribution

ENV_PREFIX = "ICON_BINGO_"

PATH_KEYS = ("icons_dir", "out_pdf", "out_cards", "log_file", "summary_csv")
LAYOUT_MODES = {"one-per-page": 1, "two-per-page": 2}

DEFAULTS: Dict[str, Any] = {
    "grid_size": 5,
    "set_count": 1,
    "cards_per_set": 1,
    "center_blank": True,
    "multi_hit_mode": False,
    "difficulty": Difficulty.MEDIUM.value,
    "icon_distribution": IconDistribution.SAME_ICONS.value,
    "same_card_across_set": False,
    "title": DEFAULT_TITLE,
    "multi_hit_probability": 0.3,
    "max_set_attempts": 50,
    "seed": {"engine": "py_random", "value": None},
    "layout": "one-per-page",
    "orientation": "auto",
    "show_labels": True,
    "image_timeout_sec": 5.0,
    "compression_level": "medium",
    "out_pdf": "bingo_cards.pdf",
    "out_cards": "cards.json",
    "log_level": "INFO",
    "log_format": "text",
}

# Keys that change the generated cards; output and logging settings stay out.
HASHED_KEYS = (
    "grid_size",
    "set_count",
    "cards_per_set",
    "center_blank",
    "multi_hit_mode",
    "difficulty",
    "icon_distribution",
    "same_card_across_set",
    "title",
    "multi_hit_probability",
    "max_set_attempts",
    "layout",
    "seed.engine",
    "seed.value",
)


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Config keys readable from the environment, with the parser for each.
ENV_KEYS: Dict[str, Callable[[str], Any]] = {
    "grid_size": int,
    "set_count": int,
    "cards_per_set": int,
    "center_blank": _as_bool,
    "multi_hit_mode": _as_bool,
    "difficulty": str,
    "icon_distribution": str,
    "same_card_across_set": _as_bool,
    "title": str,
    "multi_hit_probability": float,
    "max_set_attempts": int,
    "seed.value": int,
    "seed.engine": str,
    "layout": str,
    "orientation": str,
    "show_labels": _as_bool,
    "image_timeout_sec": float,
    "compression_level": str,
    "icons_dir": str,
    "out_pdf": str,
    "out_cards": str,
    "summary_csv": str,
    "log_level": str,
    "log_format": str,
    "log_file": str,
}


def env_name(key: str) -> str:
    """``seed.value`` -> ``ICON_BINGO_SEED_VALUE``."""
    return ENV_PREFIX + key.replace(".", "_").upper()


def load_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        raise ValidationError(f"Unsupported config extension: {suffix}")
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValidationError(f"Cannot parse {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"{path}: top-level config must be a mapping")
    return data


def read_env(env: Mapping[str, str]) -> Dict[str, Any]:
    found: Dict[str, Any] = {}
    for key, parse in ENV_KEYS.items():
        name = env_name(key)
        if name not in env:
            continue
        try:
            found[key] = parse(env[name])
        except ValueError:
            raise ValidationError(f"{name}={env[name]!r} is not a valid {parse.__name__}") from None
    return found


def _lookup(data: Mapping[str, Any], dotted: str) -> Any:
    node: Any = data
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def merge_layer(base: Dict[str, Any], layer: Mapping[str, Any]) -> Dict[str, Any]:
    """Overlay ``layer`` on a copy of ``base``; dotted keys address nested maps."""
    out = copy.deepcopy(base)
    for key, value in layer.items():
        *parents, leaf = key.split(".")
        node = out
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        if isinstance(value, Mapping) and isinstance(node.get(leaf), dict):
            node[leaf] = merge_layer(node[leaf], value)
        else:
            node[leaf] = value
    return out


def compute_params_hash(resolved: Mapping[str, Any]) -> str:
    contract: Dict[str, Any] = {}
    for key in HASHED_KEYS:
        value = _lookup(resolved, key)
        if value is not None:
            contract[key] = value
    payload = json.dumps(contract, ensure_ascii=True, sort_keys=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def resolve_paths(
    resolved: Dict[str, Any],
    config_file: Optional[Path],
    cli_overrides: Mapping[str, Any],
) -> Dict[str, Any]:
    """Make path settings absolute.

    Relative paths given on the command line are taken from the working
    directory; everything else is relative to the config file's directory.
    """
    out = dict(resolved)
    for key in PATH_KEYS:
        value = out.get(key)
        if not value:
            out[key] = None
            continue
        path = Path(str(value))
        if not path.is_absolute():
            anchor = Path.cwd() if key in cli_overrides or config_file is None else config_file.parent
            path = (anchor / path).resolve()
        out[key] = str(path)
    return out


def resolve_parameters(
    *,
    config_path_str: Optional[str],
    cli_overrides: Mapping[str, Any],
    env: Optional[Mapping[str, str]] = None,
) -> Tuple[Dict[str, Any], str, Optional[Path]]:
    """Returns ``(resolved, params_hash, config_path)``."""
    config_path = Path(config_path_str).resolve() if config_path_str else None
    resolved = dict(DEFAULTS)
    for layer in (
        load_config_file(config_path) if config_path else {},
        read_env(os.environ if env is None else env),
        cli_overrides,
    ):
        resolved = merge_layer(resolved, layer)
    resolved = resolve_paths(resolved, config_path, cli_overrides)
    return resolved, compute_params_hash(resolved), config_path


def _enum_value(enum_cls, raw: Any, key: str):
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{key} must be one of: {allowed} (got {raw!r})") from None


def build_request(resolved: Mapping[str, Any]) -> GenerationRequest:
    icon_distribution = _enum_value(IconDistribution, resolved["icon_distribution"], "icon_distribution")
    difficulty = _enum_value(Difficulty, resolved["difficulty"], "difficulty")
    try:
        return GenerationRequest(
            grid_size=int(resolved["grid_size"]),
            set_count=int(resolved["set_count"]),
            cards_per_set=int(resolved["cards_per_set"]),
            center_blank=bool(resolved["center_blank"]),
            multi_hit_mode=bool(resolved["multi_hit_mode"]),
            icon_distribution=icon_distribution,
            same_card_across_set=bool(resolved["same_card_across_set"]),
            title=str(resolved.get("title") or ""),
            difficulty=difficulty,
            multi_hit_probability=float(resolved["multi_hit_probability"]),
            max_set_attempts=int(resolved["max_set_attempts"]),
        )
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid generation parameter: {exc}") from exc


def build_layout_options(resolved: Mapping[str, Any]) -> LayoutOptions:
    mode = str(resolved.get("layout", "one-per-page")).strip().lower()
    if mode not in LAYOUT_MODES:
        raise ValidationError(f"layout must be one of: {', '.join(LAYOUT_MODES)} (got {mode!r})")
    try:
        return LayoutOptions(
            cards_per_page=LAYOUT_MODES[mode],
            orientation=str(resolved.get("orientation", "auto")).strip().lower(),
            show_labels=bool(resolved.get("show_labels", True)),
            image_timeout_sec=float(resolved.get("image_timeout_sec", 5.0)),
            compression_level=str(resolved.get("compression_level", "medium")).strip().lower(),
        )
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
