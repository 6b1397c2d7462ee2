"""
Application configuration with layered loading.

Configuration precedence (highest to lowest):
1. Environment variables
2. config.yml values
3. Default values defined here

The resulting Settings value is frozen. The chat pipeline receives it at
construction time and never reads the process environment mid-request.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List
from datetime import timezone, timedelta
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load .env file first (lowest priority, will be overridden by config.yml and env vars)
load_dotenv()

# Setup basic logging for config loading
logger = logging.getLogger(__name__)


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "config.example.yml").exists() or (parent / "pyproject.toml").exists():
            return parent
    return Path(os.getenv("LOGCHAT_ROOT", os.getcwd()))


def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from YAML file if it exists."""
    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}")
        return {}

    import yaml
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}
    logger.info(f"Loaded configuration from {config_path}")
    return config


def _get_nested(d: Dict, *keys, default=None):
    """Safely get a nested dictionary value."""
    for key in keys:
        if isinstance(d, dict):
            d = d.get(key, default)
        else:
            return default
    return d if d is not None else default


def _env_or_yaml(env_key: str, yaml_config: Dict, *yaml_keys, default=None):
    """Get value from environment variable, falling back to YAML config, then default."""
    env_value = os.getenv(env_key)
    if env_value is not None:
        return env_value

    yaml_value = _get_nested(yaml_config, *yaml_keys)
    if yaml_value is not None:
        return yaml_value

    return default


def _as_bool(value) -> bool:
    """Interpret env/yaml flag values ("true", "1", True, ...)."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_list(value) -> List[str]:
    """Split comma separated env values; YAML lists pass through."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _parse_token_map(value) -> Dict[str, str]:
    """Parse "token:user,token2:user2" (or a YAML mapping) into a dict."""
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items()}
    tokens = {}
    for pair in _as_list(value):
        if ":" not in pair:
            logger.warning("Ignoring malformed API token entry (expected token:user)")
            continue
        token, user_id = pair.split(":", 1)
        tokens[token.strip()] = user_id.strip()
    return tokens


class _Frozen(BaseModel):
    class Config:
        frozen = True
        protected_namespaces = ()


class LLMConfig(_Frozen):
    """Chat completion endpoint (OpenAI-compatible)."""
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model_name: str = "gpt-4o-mini"
    data_temperature: float = 0.1
    smalltalk_temperature: float = 0.6


class EmbeddingsConfig(_Frozen):
    """Embeddings configuration."""
    provider: str = "openai"  # openai | local
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model_name: str = "text-embedding-3-small"
    device: str = "cpu"


class RAGConfig(_Frozen):
    """Retrieval thresholds and limits."""
    similarity_floor: float = 0.2
    min_match_count: int = 12
    default_top_k: int = 8
    raw_log_limit: int = 20
    chunk_max_chars: int = 2000
    chunk_overlap: int = 200


class AnalyticsConfig(_Frozen):
    """Deterministic answer limits."""
    default_days: int = 7
    widen_days: int = 30
    streak_scan_days: int = 90
    top_areas_limit: int = 5
    recent_limit: int = 10
    summary_bullets: int = 8
    learned_scan_limit: int = 50
    learned_snippets: int = 10


class StorageConfig(_Frozen):
    """Where the structured log store and the semantic index live."""
    db_path: Path = Path("data/logchat.db")
    chroma_path: Optional[Path] = Path("data/chroma")
    collection_name: str = "user_documents"


class AuthConfig(_Frozen):
    """Authentication configuration."""
    api_tokens: Dict[str, str] = Field(default_factory=dict)
    auth_url: str = ""
    auth_api_key: str = ""
    timeout_seconds: float = 10.0


class CorsConfig(_Frozen):
    """Origin allow-list for browser callers."""
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class UserConfig(_Frozen):
    """Calendar settings used for day boundaries and display."""
    timezone_offset_hours: int = 0

    @property
    def timezone(self):
        """Get the configured timezone as a timezone object."""
        return timezone(timedelta(hours=self.timezone_offset_hours))


class LoggingConfig(_Frozen):
    """Logging configuration."""
    level: str = "INFO"
    logs_path: Optional[Path] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class FeaturesConfig(_Frozen):
    """Feature flags."""
    private_mode: bool = False
    external_embeddings: bool = False


class Settings(_Frozen):
    """
    Application settings with layered configuration.

    Configuration is loaded from (in order of precedence):
    1. Environment variables
    2. config.yml
    3. Default values
    """

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embeddings: EmbeddingsConfig = Field(default_factory=EmbeddingsConfig)
    rag: RAGConfig = Field(default_factory=RAGConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)

    @property
    def private_mode(self) -> bool:
        return self.features.private_mode

    @property
    def user_timezone(self):
        return self.user.timezone


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Build a Settings value from defaults, config.yml and the environment."""
    yaml_config = _load_yaml_config(config_path or PROJECT_ROOT / "config.yml")
    y = yaml_config

    chroma_path = _env_or_yaml("LOGCHAT_CHROMA_PATH", y, "storage", "chroma_path", default="data/chroma")
    logs_path = _env_or_yaml("LOGCHAT_LOGS_PATH", y, "logging", "logs_path", default=None)

    return Settings(
        llm=LLMConfig(
            base_url=_env_or_yaml("LLM_BASE_URL", y, "llm", "base_url", default=LLMConfig().base_url),
            api_key=_env_or_yaml("LLM_API_KEY", y, "llm", "api_key", default=os.getenv("OPENAI_API_KEY", "")),
            model_name=_env_or_yaml("LLM_MODEL_NAME", y, "llm", "model_name", default=LLMConfig().model_name),
            data_temperature=float(_get_nested(y, "llm", "data_temperature", default=0.1)),
            smalltalk_temperature=float(_get_nested(y, "llm", "smalltalk_temperature", default=0.6)),
        ),
        embeddings=EmbeddingsConfig(
            provider=_env_or_yaml("EMBED_PROVIDER", y, "embeddings", "provider", default="openai"),
            base_url=_env_or_yaml("EMBED_BASE_URL", y, "embeddings", "base_url",
                                  default=_env_or_yaml("LLM_BASE_URL", y, "llm", "base_url",
                                                       default=EmbeddingsConfig().base_url)),
            api_key=_env_or_yaml("EMBED_API_KEY", y, "embeddings", "api_key", default=os.getenv("OPENAI_API_KEY", "")),
            model_name=_env_or_yaml("EMBED_MODEL_NAME", y, "embeddings", "model_name",
                                    default=EmbeddingsConfig().model_name),
            device=_get_nested(y, "embeddings", "device", default="cpu"),
        ),
        rag=RAGConfig(
            similarity_floor=float(_env_or_yaml("LOGCHAT_SIMILARITY_FLOOR", y, "rag", "similarity_floor", default=0.2)),
            min_match_count=int(_get_nested(y, "rag", "min_match_count", default=12)),
            default_top_k=int(_get_nested(y, "rag", "default_top_k", default=8)),
            raw_log_limit=int(_get_nested(y, "rag", "raw_log_limit", default=20)),
            chunk_max_chars=int(_get_nested(y, "rag", "chunk_max_chars", default=2000)),
            chunk_overlap=int(_get_nested(y, "rag", "chunk_overlap", default=200)),
        ),
        analytics=AnalyticsConfig(
            default_days=int(_get_nested(y, "analytics", "default_days", default=7)),
            widen_days=int(_get_nested(y, "analytics", "widen_days", default=30)),
            streak_scan_days=int(_get_nested(y, "analytics", "streak_scan_days", default=90)),
        ),
        storage=StorageConfig(
            db_path=Path(_env_or_yaml("LOGCHAT_DB_PATH", y, "storage", "db_path", default="data/logchat.db")),
            chroma_path=Path(chroma_path) if chroma_path else None,
            collection_name=_get_nested(y, "storage", "collection_name", default="user_documents"),
        ),
        auth=AuthConfig(
            api_tokens=_parse_token_map(_env_or_yaml("LOGCHAT_API_TOKENS", y, "auth", "api_tokens", default="")),
            auth_url=_env_or_yaml("LOGCHAT_AUTH_URL", y, "auth", "auth_url", default=""),
            auth_api_key=_env_or_yaml("LOGCHAT_AUTH_API_KEY", y, "auth", "api_key", default=""),
        ),
        cors=CorsConfig(
            allowed_origins=_as_list(_env_or_yaml("ALLOWED_ORIGINS", y, "cors", "allowed_origins", default="*")),
        ),
        user=UserConfig(
            timezone_offset_hours=int(_env_or_yaml("LOGCHAT_TIMEZONE_OFFSET", y, "user", "timezone_offset_hours",
                                                   default=0)),
        ),
        logging=LoggingConfig(
            level=_env_or_yaml("LOGCHAT_LOG_LEVEL", y, "logging", "level", default="INFO"),
            logs_path=Path(logs_path) if logs_path else None,
        ),
        features=FeaturesConfig(
            private_mode=_as_bool(_env_or_yaml("LOGCHAT_PRIVATE_MODE", y, "features", "private_mode", default=False)),
            external_embeddings=_as_bool(_env_or_yaml("ENABLE_EXTERNAL_EMBEDDINGS", y, "features",
                                                      "external_embeddings", default=False)),
        ),
    )


# Find project root and build the singleton
PROJECT_ROOT = _find_project_root()
settings = load_settings()


def get_config_source(key: str, env_key: Optional[str] = None) -> str:
    """
    Get the source of a configuration value.

    ``key`` is the dotted config.yml path; ``env_key`` the environment
    variable that overrides it (derived from ``key`` when omitted).

    Returns 'env', 'yaml', or 'default'.
    """
    env_key = env_key or key.upper().replace(".", "_")
    if os.getenv(env_key) is not None:
        return "env"

    keys = key.split(".")
    yaml_value = _get_nested(_load_yaml_config(PROJECT_ROOT / "config.yml"), *keys)
    if yaml_value is not None:
        return "yaml"

    return "default"
