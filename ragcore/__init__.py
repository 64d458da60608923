"""ragcore: per-user document ingestion and hybrid retrieval for chat assistants."""

__version__ = "0.1.0"
