# =============================================================================
# ragcore/cli/ingest.py — CLI for managing a user's RAG corpus
# =============================================================================
#
# Operator tool mirroring the inbound interface of the RAG core. Text must
# already be extracted (PDF/DOCX extraction happens upstream); this tool
# loads the resulting .txt/.md files into a user's corpus and lets you check
# what retrieval returns for a query.
#
# Supported subcommands:
#
#   ingest — Ingest an extracted text file for a user
#   delete — Delete one of a user's documents and its chunks
#   query  — Run retrieval and print the assembled, cited context
#   list   — List a user's documents with their processing state
#   stats  — Display per-user corpus statistics
#
# Usage examples:
#   python -m ragcore.cli.ingest ingest --user u1 --file guide.txt --name "Guide.pdf"
#   python -m ragcore.cli.ingest query --user u1 "how are boundaries set?"
#   python -m ragcore.cli.ingest list --user u1
#   python -m ragcore.cli.ingest delete --user u1 --document <id>
#   python -m ragcore.cli.ingest stats --user u1
# =============================================================================

"""Standalone CLI for loading text into, and querying, a user's RAG corpus.

Usage::

    python -m ragcore.cli.ingest ingest --user u1 --file guide.txt

    python -m ragcore.cli.ingest query --user u1 "how are boundaries set?"

    python -m ragcore.cli.ingest stats --user u1
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from ragcore.config.settings import Settings
from ragcore.main import RAGCore, build_rag_core
from ragcore.utils.errors import RAGCoreError
from ragcore.utils.logging import bind_request_context, configure_logging

# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, core: RAGCore) -> int:
    """Ingest one extracted text file."""
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    name = args.name or path.name
    print(f"Ingesting: {name} for user {args.user}")
    print(f"  File: {path}")

    result = await core.ingest(
        user_id=args.user,
        source_text=path.read_text(encoding="utf-8"),
        original_name=name,
        media_type=args.media_type,
        byte_size=path.stat().st_size,
        tags=args.tags,
    )

    if result.duplicate:
        print("\nAlready ingested (identical text):")
        print(f"  Document ID:    {result.document_id}")
        return 0

    print("\nIngestion complete:")
    print(f"  Chunks created: {result.chunks_created}")
    print(f"  Chunks skipped: {result.chunks_skipped}")
    print(f"  Total tokens:   {result.total_tokens}")
    print(f"  Time:           {result.ingestion_time:.2f}s")
    print(f"  Document ID:    {result.document_id}")
    return 0


async def _handle_delete(args: argparse.Namespace, core: RAGCore) -> int:
    """Delete a document and its chunks."""
    if not args.yes:
        confirm = input(f"  Delete document {args.document}? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    await core.delete_document(args.user, args.document)
    print(f"Deleted document {args.document}.")
    return 0


async def _handle_query(args: argparse.Namespace, core: RAGCore) -> int:
    """Run retrieval and print the assembled context."""
    overrides: dict[str, Any] = {"enabled": True}
    for key in ("k", "min_score", "hybrid_weight", "max_per_doc", "max_tokens"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if args.all_users:
        overrides["enforce_acl"] = False

    context = await core.retrieve_context(args.query, args.user, overrides)

    if not context.context_text:
        print("No relevant context found.")
        return 0

    print(context.context_text)
    print()
    print("=" * 40)
    print(f"  Chunks:  {context.included_count} of {len(context.chunks)} within budget")
    print(f"  Sources: {context.source_count}")
    print(f"  Tokens:  {context.total_tokens}")
    for position, chunk in enumerate(context.chunks):
        marker = "" if position < context.included_count else "  (over budget)"
        print(f"    {chunk.score:.3f}  {chunk.citation}{marker}")
    return 0


async def _handle_list(args: argparse.Namespace, core: RAGCore) -> int:
    """List a user's documents."""
    documents = await core.list_documents(args.user)
    if not documents:
        print(f"No documents for user {args.user}.")
        return 0

    for doc in documents:
        if doc.processed:
            state = "processed"
        elif doc.processing_error:
            state = f"failed: {doc.processing_error}"
        else:
            state = "pending"
        print(f"  {doc.id}  {doc.original_name:<30} {state}")
    return 0


async def _handle_stats(args: argparse.Namespace, core: RAGCore) -> int:
    """Display per-user corpus statistics."""
    stats = await core.get_retrieval_stats(args.user)

    print(f"Corpus Statistics ({args.user})")
    print("=" * 40)
    print(f"  Total documents:     {stats.total_documents}")
    print(f"  Processed documents: {stats.processed_documents}")
    print(f"  Total chunks:        {stats.total_chunks}")
    print(f"  Avg chunks per doc:  {stats.avg_chunks_per_doc:.1f}")
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "delete": _handle_delete,
    "query": _handle_query,
    "list": _handle_list,
    "stats": _handle_stats,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the corpus CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m ragcore.cli.ingest",
        description="Manage and query a user's RAG corpus.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="Path to the YAML config file"
    )
    subparsers = parser.add_subparsers(dest="command", help="Corpus commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest an extracted text file")
    ingest_parser.add_argument("--user", required=True, help="Owning user id")
    ingest_parser.add_argument("--file", required=True, help="Path to the text file")
    ingest_parser.add_argument("--name", help="Original filename (default: file name)")
    ingest_parser.add_argument(
        "--media-type",
        default="text/plain",
        dest="media_type",
        help="Declared media type of the original upload",
    )
    ingest_parser.add_argument("--tags", nargs="*", default=[], help="Free-form tags")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a document")
    delete_parser.add_argument("--user", required=True, help="Owning user id")
    delete_parser.add_argument("--document", required=True, help="Document id")
    delete_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip confirmation prompt"
    )

    # -- query --
    query_parser = subparsers.add_parser("query", help="Retrieve context for a query")
    query_parser.add_argument("query", help="Query text")
    query_parser.add_argument("--user", required=True, help="Querying user id")
    query_parser.add_argument("--k", type=int, help="Chunks to return")
    query_parser.add_argument("--min-score", type=float, dest="min_score")
    query_parser.add_argument("--hybrid-weight", type=float, dest="hybrid_weight")
    query_parser.add_argument("--max-per-doc", type=int, dest="max_per_doc")
    query_parser.add_argument("--max-tokens", type=int, dest="max_tokens")
    query_parser.add_argument(
        "--all-users",
        action="store_true",
        dest="all_users",
        help="Search every user's documents (disables access control)",
    )

    # -- list --
    list_parser = subparsers.add_parser("list", help="List a user's documents")
    list_parser.add_argument("--user", required=True, help="Owning user id")

    # -- stats --
    stats_parser = subparsers.add_parser("stats", help="Show corpus statistics")
    stats_parser.add_argument("--user", required=True, help="Owning user id")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    with bind_request_context(command=args.command, user_id=getattr(args, "user", None)):
        core = await build_rag_core(app_settings, config_path=args.config)
        return await _HANDLERS[args.command](args, core)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, loads Settings from the environment / .env file,
    builds the RAG core and dispatches to the matching handler.  Library
    errors are printed and turned into exit code 1.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    try:
        exit_code = asyncio.run(_run(args, app_settings))
    except RAGCoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
