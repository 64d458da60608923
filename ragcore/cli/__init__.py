"""Command-line tools for ragcore.

- ``python -m ragcore.cli.ingest`` -- ingest extracted text files, query,
  list, delete and report on a user's corpus.
"""
