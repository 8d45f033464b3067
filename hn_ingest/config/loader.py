"""Configuration loading helpers for the ingestion service."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import IngestionConfig

CONFIG_FILENAME = "ingest_config.yaml"
HOME_ENV_VAR = "HN_INGEST_HOME"

# Environment variable -> dotted path inside IngestionConfig
ENV_OVERRIDES: dict[str, str] = {
    "HN_API_BASE_URL": "source_api.base_url",
    "HN_SEARCH_API_BASE_URL": "source_api.search_base_url",
    "HN_API_TIMEOUT": "source_api.timeout",
    "POLLING_INTERVAL": "polling_interval",
    "STORY_WORKERS": "workers.story_workers",
    "COMMENT_WORKERS": "workers.comment_workers",
    "CACHE_BACKEND": "cache.backend",
    "CACHE_TTL": "cache.ttl",
    "PUBLISHER_BACKEND": "publisher.backend",
    "MAX_RETRIES": "retry.max_retries",
    "RETRY_DELAY": "retry.retry_delay",
}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Return a copy of ``payload`` with recognised environment variables applied."""

    env = os.environ if environ is None else environ
    merged = json.loads(json.dumps(payload, default=str))
    for env_name, dotted in ENV_OVERRIDES.items():
        if env_name not in env:
            continue
        *parents, leaf = dotted.split(".")
        node = merged
        for key in parents:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[leaf] = env[env_name]
    return merged


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME

    def resolve(self, path: Path) -> Path:
        """Anchor relative paths from configuration at the project root."""

        if path.is_absolute():
            return path
        return (self.project_root / path).resolve()


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: IngestionConfig | None = None

    def load_config(self, environ: Mapping[str, str] | None = None) -> IngestionConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            payload = _read_file(path)
        else:
            payload = IngestionConfig().model_dump(mode="json")
            _write_file(path, payload)
        config = IngestionConfig.model_validate(apply_env_overrides(payload, environ))
        self._cache = config
        return config

    def save_config(self, config: IngestionConfig) -> Path:
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config
        return path

    def reload(self) -> IngestionConfig:
        self._cache = None
        return self.load_config()


__all__ = [
    "CONFIG_FILENAME",
    "ConfigLocator",
    "ConfigRepository",
    "ENV_OVERRIDES",
    "apply_env_overrides",
]
