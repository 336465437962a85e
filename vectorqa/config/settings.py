"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Settings are read from two sources, in priority order:
#
#   1. **Environment variables** -- e.g. OPENAI_API_KEY=sk-abc123
#   2. **.env file** -- key=value lines in the project root .env file
#
# Field name `openai_api_key` maps to env var `OPENAI_API_KEY`.
# Defaults apply when neither source defines a value.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """vectorqa application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM / Embeddings ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, Azure proxy, ...)
    openai_text_model: str = "gpt-3.5-turbo"
    openai_embedding_model: str = "text-embedding-3-small"
    llm_timeout_seconds: float = 60.0

    # === Vector index ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_host: str = ""  # when set, talk to a Chroma server instead of the local store
    chromadb_port: int = 8000
    default_collection: str = "documents"

    # === Response cache ===
    redis_url: str = ""  # empty = in-process TTL cache
    cache_ttl_seconds: int = 86400
    cache_max_entries: int = 1000

    # === Document extraction (Unstructured API) ===
    unstructured_url: str = "http://localhost:8000"
    unstructured_api_key: str = ""

    # === Ingestion ===
    docs_directory: str = "docs"  # scratch space for downloaded PDFs / documents
    http_timeout_seconds: float = 30.0
    user_agent: str = "vectorqa/0.1 (+https://github.com/vectorqa)"
    sitemap_fetch_concurrency: int = 5
    sitemap_fetch_delay: float = 4.0
    ingest_concurrency: int = 5

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "*"  # comma-separated

    def get_cors_origins(self) -> list[str]:
        """Return the configured CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
