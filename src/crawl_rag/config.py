"""Configuration management using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CRAWL_RAG_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Paths
    data_dir: Path = Path("data")
    database_url: str = "sqlite+aiosqlite:///data/crawl_rag.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: str = "*"

    # Headless render service
    render_url: str = "https://production-sfo.browserless.io"
    render_token: str | None = None
    render_timeout_seconds: float = 30.0

    # LLM provider (any OpenAI-compatible endpoint)
    llm_api_key: str | None = None
    llm_api_url: str | None = None
    model_choice: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1024
    embedding_max_attempts: int = 1
    embedding_base_delay_seconds: float = 1.0

    # Feature flags
    use_contextual_embeddings: bool = False
    use_hybrid_search: bool = True
    use_agentic_rag: bool = False
    use_reranking: bool = False

    # Reranking
    rerank_provider: Literal["cohere", "cross_encoder"] = "cohere"
    cohere_api_key: str | None = None
    cohere_api_url: str = "https://api.cohere.com"
    rerank_model: str = "rerank-multilingual-v3.0"
    cross_encoder_model: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"

    # Crawling
    default_max_depth: int = 3
    default_max_concurrent: int = 10
    default_chunk_size: int = 5000
    single_page_chunk_size: int = 1000
    batch_delay_seconds: float = 1.0
    depth_delay_seconds: float = 2.0

    # Storage
    storage_batch_size: int = 20
    storage_max_attempts: int = 3
    storage_base_delay_seconds: float = 1.0

    # Enrichment
    code_example_min_length: int = 1000
    summary_max_length: int = 500

    # Hybrid merge policy
    hybrid_boost: float = 1.2
    keyword_default_similarity: float = 0.5

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure the local SQLite directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
