"""
Configuration management for chunklab.

Settings come from three layers, later layers winning:

1. DEFAULT_CONFIG below
2. A YAML file: the explicit path, else ./chunklab.yaml, else
   ~/.chunklab/config.yaml
3. Environment variables: CHUNKLAB_DATA_DIR, CHUNKLAB_EMBEDDING_MODEL

Example YAML:

    data_dir: ~/experiments/chunklab
    embedding_model: text-embedding-3-small
    chunking:
      default_methods: [recursive, token]
      token:
        token_count: 128
        overlap: 16
    retrieval:
      methods: [dense, hybrid]
      top_k: 10
"""

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from .strategies import ChunkingMethod, ChunkParams, params_for

DEFAULT_CONFIG: dict[str, Any] = {
    "data_dir": "~/.chunklab",
    "store_backend": "json",
    "embedding_model": "text-embedding-3-small",
    "chunking": {
        "default_methods": ["recursive"],
        "fixed": {"chunk_size": 1000, "overlap": 200},
        "recursive": {"chunk_size": 1000, "overlap": 200},
        "token": {"token_count": 256, "overlap": 50},
        "sentence": {"sentence_count": 5, "overlap": 1},
        "semantic": {"similarity_threshold": 0.5},
    },
    "retrieval": {"methods": ["dense"], "top_k": 5},
}

ENV_OVERRIDES = {
    "CHUNKLAB_DATA_DIR": "data_dir",
    "CHUNKLAB_EMBEDDING_MODEL": "embedding_model",
}


def _find_config_file() -> Path | None:
    """Look for a config file in standard locations."""
    candidates = [
        Path.cwd() / "chunklab.yaml",
        Path.home() / ".chunklab" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load configuration, merging defaults with file and env vars.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        ValueError: If the file does not hold a YAML mapping
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = _find_config_file()

    if path is not None:
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        if not isinstance(file_cfg, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        _deep_merge(cfg, file_cfg)

    for env_var, key in ENV_OVERRIDES.items():
        if value := os.environ.get(env_var):
            cfg[key] = value

    cfg["data_dir"] = str(Path(cfg["data_dir"]).expanduser())
    return cfg


def params_from_config(cfg: dict[str, Any]) -> dict[ChunkingMethod, ChunkParams]:
    """
    Build the per-method parameter map from the `chunking` section.

    Raises:
        ValueError: If a parameter value is out of range
    """
    chunking = cfg.get("chunking", {})
    return {
        method: params_for(method, **(chunking.get(method.value) or {}))
        for method in ChunkingMethod
    }


def default_methods(cfg: dict[str, Any]) -> list[ChunkingMethod]:
    """
    Chunking methods used when none are requested.

    Raises:
        ValueError: If the config names an unknown method
    """
    return [ChunkingMethod(m) for m in cfg.get("chunking", {}).get("default_methods", [])]


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
