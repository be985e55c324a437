"""
Configuration: loads settings from .codewiki.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "db_path": ".codewiki/wiki.db",
    "cache_ttl_seconds": 300.0,
    "cache_sample_size": 10,
    "content_threshold": 0.30,
    "vector_min_score": 0.45,
    "vector_limit": 3,
    "vector_enabled": True,
    "embedding_model": "text-embedding-3-small",
    "openai_api_key": "",
    "openai_base_url": "",
    "knowledge_branch": "main",
}

# Config file search locations
_CONFIG_FILENAMES = [".codewiki.yaml", ".codewiki.yml"]


def _find_config_file(explicit_path: str | None = None,
                      project_root: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, project root, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [project_root or os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .codewiki.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() == "true"
            yaml_val = yd.get(yaml_key)
            if isinstance(yaml_val, str):
                return yaml_val.lower() == "true"
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.DB_PATH = _get("CODEWIKI_DB_PATH", "db_path", _DEFAULTS["db_path"])

        # Scan cache
        self.CACHE_TTL_SECONDS = _get("CODEWIKI_CACHE_TTL_SECONDS", "cache_ttl_seconds",
                                      _DEFAULTS["cache_ttl_seconds"], cast=float)
        self.CACHE_SAMPLE_SIZE = _get("CODEWIKI_CACHE_SAMPLE_SIZE", "cache_sample_size",
                                      _DEFAULTS["cache_sample_size"], cast=int)

        # Matcher
        self.CONTENT_THRESHOLD = _get("CODEWIKI_CONTENT_THRESHOLD", "content_threshold",
                                      _DEFAULTS["content_threshold"], cast=float)
        self.VECTOR_MIN_SCORE = _get("CODEWIKI_VECTOR_MIN_SCORE", "vector_min_score",
                                     _DEFAULTS["vector_min_score"], cast=float)
        self.VECTOR_LIMIT = _get("CODEWIKI_VECTOR_LIMIT", "vector_limit",
                                 _DEFAULTS["vector_limit"], cast=int)
        self.VECTOR_ENABLED = _get_bool("CODEWIKI_VECTOR_ENABLED", "vector_enabled",
                                        _DEFAULTS["vector_enabled"])
        self.KNOWLEDGE_BRANCH = _get("CODEWIKI_KNOWLEDGE_BRANCH", "knowledge_branch",
                                     _DEFAULTS["knowledge_branch"])

        self.EMBEDDING_MODEL = _get("EMBEDDING_MODEL", "embedding_model",
                                    _DEFAULTS["embedding_model"])

        # OpenAI embeddings
        openai_section = yd.get("openai", {}) if isinstance(yd.get("openai"), dict) else {}
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or openai_section.get(
            "api_key", _DEFAULTS["openai_api_key"])
        self.OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or openai_section.get(
            "base_url", _DEFAULTS["openai_base_url"])

    def db_path_for(self, project_root: str) -> str:
        """Absolute database path; relative paths resolve against *project_root*."""
        if os.path.isabs(self.DB_PATH):
            return self.DB_PATH
        return os.path.join(os.path.abspath(project_root), self.DB_PATH)

    @classmethod
    def load(cls, config_path: str | None = None,
             project_root: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path, project_root)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
