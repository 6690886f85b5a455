"""Logic for loading and merging configuration files."""

from pathlib import Path
from typing import Any

import yaml

from rustskel.deep_merge import deep_merge
from rustskel.load_item_graph import MAX_FORMAT_VERSION, MIN_FORMAT_VERSION
from rustskel.render_options import (
    AUTO_TRAITS,
    BLANKET_NOISE_TRAITS,
    DERIVABLE_TRAITS,
    MAX_REEXPORT_DEPTH,
)

DEFAULT_CONFIG: dict[str, Any] = {
    "render": {
        "include_private": False,
        "include_auto_impls": False,
        "include_blanket_impls": False,
        "include_docs": True,
        "features": [],
        "raw": False,
    },
    "policy": {
        "auto_traits": list(AUTO_TRAITS),
        "blanket_noise_traits": list(BLANKET_NOISE_TRAITS),
        "derivable_traits": list(DERIVABLE_TRAITS),
        "max_reexport_depth": MAX_REEXPORT_DEPTH,
    },
    "schema": {
        "min_format_version": MIN_FORMAT_VERSION,
        "max_format_version": MAX_FORMAT_VERSION,
    },
}


def load_config(path: str | None = None) -> dict[str, Any]:
    """Load configuration from a YAML file and merge it with defaults."""
    config = DEFAULT_CONFIG.copy()
    if path:
        p = Path(path)
        if p.exists():
            user_config = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            config = deep_merge(config, user_config)
    return config
