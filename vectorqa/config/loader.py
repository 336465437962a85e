"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  -- static defaults checked into the repo
#                            (chunk sizes, retrieval k, token limits)
#   2. .env file           -- local developer overrides (not committed)
#   3. Environment vars    -- set at deploy time
#
# _deep_merge does recursive dict merging:
#   base = {"ingestion": {"chunk_size": 2000}}
#   overrides = {"ingestion": {"concurrency": 5}}
#   result = {"ingestion": {"chunk_size": 2000, "concurrency": 5}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path
from typing import Any

import yaml

from vectorqa.config.settings import Settings

# Used when config.yaml is missing or leaves a section out.
DEFAULT_CONFIG: dict[str, Any] = {
    "ingestion": {
        "chunk_size": 2000,
        "chunk_overlap": 250,
        "url_chunk_size": 500,
        "url_chunk_overlap": 100,
    },
    "qa": {
        "k": 3,
        "temperature": 0.0,
        "max_tokens": 10000,
    },
    "live": {
        "k": 4,
        "chunk_size": 2000,
        "chunk_overlap": 200,
        "temperature": 0.0,
        "max_tokens": 1000,
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config: dict = {}
    _deep_merge(config, _copy(DEFAULT_CONFIG))

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "model": settings.openai_text_model,
            "embedding_model": settings.openai_embedding_model,
            "custom_base_url": bool(settings.openai_base_url),
        },
        "index": {
            "default_collection": settings.default_collection,
            "backend": "chromadb-http" if settings.chromadb_host else "chromadb-local",
        },
        "cache": {
            "backend": "redis" if settings.redis_url else "memory",
            "ttl": settings.cache_ttl_seconds,
        },
        "ingestion": {
            "concurrency": settings.ingest_concurrency,
            "sitemap_fetch_concurrency": settings.sitemap_fetch_concurrency,
            "sitemap_fetch_delay": settings.sitemap_fetch_delay,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _copy(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _copy(v) for k, v in value.items()}
    return value


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
