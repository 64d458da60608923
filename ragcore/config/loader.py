"""YAML configuration loader with environment variable overrides.

Retrieval defaults are resolved in layers (later layers override earlier):

  1. Built-in defaults    — the ``rag_*`` fields of :class:`Settings`
  2. config/config.yaml   — deployment-wide tuning checked into the repo
  3. .env file            — local developer overrides (not committed)
  4. Environment vars     — set at deploy time

``load_config()`` reads the YAML file first, then deep-merges the ``RAG_*``
values the environment actually sets into its ``retrieval`` section.  A key
left unset in the environment keeps its YAML value, so ``hybrid_weight: 0.7``
in the file holds until ``RAG_HYBRID_WEIGHT`` says otherwise.
"""

from pathlib import Path

import yaml

from ragcore.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge explicitly set retrieval settings on top.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read otherwise.

    Returns:
        Configuration dictionary; ``retrieval`` is always present.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    yaml_config.setdefault("retrieval", {})
    _deep_merge(yaml_config, {"retrieval": settings.explicit_retrieval_overrides()})
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
