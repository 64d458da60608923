"""Application settings loaded from environment variables via pydantic-settings.

Values are read from (in priority order):

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory
  3. The defaults below

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY`` and so on.
The ``rag_*`` fields are the deployment-wide retrieval defaults; callers may
still pass their own :class:`~ragcore.models.rag.RetrievalSettings` per call.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from ragcore.models.rag import RetrievalSettings

# Settings field -> RetrievalSettings field.
_RETRIEVAL_FIELDS = {
    "rag_enabled": "enabled",
    "rag_top_k": "k",
    "rag_min_score": "min_score",
    "rag_hybrid_weight": "hybrid_weight",
    "rag_max_per_doc": "max_per_doc",
    "rag_rerank_top_n": "rerank_top_n",
    "rag_max_tokens": "max_tokens",
    "rag_enforce_acl": "enforce_acl",
}


class Settings(BaseSettings):
    """ragcore settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding / summarization providers ===
    # Empty string = "not configured"; provider selection in main.py skips it.
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = ""  # Defaults to text-embedding-3-small
    openai_summary_model: str = ""  # Defaults to gpt-4o-mini
    ollama_base_url: str = "http://localhost:11434"
    ollama_embedding_model: str = "nomic-embed-text"
    ollama_summary_model: str = "llama3.2"

    # === Document store ===
    store_backend: str = "sqlite"  # "sqlite" or "memory"
    document_db_path: str = "data/ragcore.db"

    # === Ingestion ===
    chunk_size: int = 800  # words per window
    chunk_overlap: int = 120  # words shared with the previous window
    words_per_page: int | None = 500  # None disables page estimates
    ingestion_delay_seconds: float = 0.1  # pause between embedding calls

    # === Retrieval defaults ===
    rag_enabled: bool = False
    rag_top_k: int = 8
    rag_min_score: float = 0.30
    rag_hybrid_weight: float = 0.5
    rag_max_per_doc: int = 3
    rag_rerank_top_n: int = 50
    rag_max_tokens: int = 2000
    rag_enforce_acl: bool = True

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def retrieval_defaults(self) -> RetrievalSettings:
        """Build the deployment-wide :class:`RetrievalSettings`."""
        return RetrievalSettings(
            **{name: getattr(self, field) for field, name in _RETRIEVAL_FIELDS.items()}
        )

    def explicit_retrieval_overrides(self) -> dict[str, object]:
        """Retrieval values set through the environment, ``.env`` or kwargs.

        Fields still at their built-in default are left out, so a YAML
        ``retrieval`` section can tune them without being clobbered.
        """
        return {
            name: getattr(self, field)
            for field, name in _RETRIEVAL_FIELDS.items()
            if field in self.model_fields_set
        }
