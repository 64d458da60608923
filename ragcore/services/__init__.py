"""Ingestion and retrieval services built on the provider interfaces."""
