"""Shared utilities: error hierarchy, structured logging, scoring helpers."""
