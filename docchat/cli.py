"""docchat command line interface.

    docchat ingest docs/ README.md --source-prefix handbook/
    docchat ask "How do I reset my password?"
    docchat stats
    docchat clear
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from docchat.core.config import get_settings
from docchat.core.container import ServiceContainer
from docchat.core.errors import RAGError
from docchat.core.interfaces import IEmbeddingProvider, IGenerationProvider
from docchat.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

DEFAULT_PATTERNS = ("**/*.md", "**/*.markdown", "**/*.txt")

EXIT_OK = 0
EXIT_INIT_FAILURE = 1
EXIT_PARTIAL_FAILURE = 2


def iter_files(paths: Sequence[str], patterns: Sequence[str] = DEFAULT_PATTERNS) -> List[Tuple[Path, str]]:
    """Expand files and directories into ``(path, source name)`` pairs.

    Files inside a directory are named relative to that directory; files
    given directly are named by their file name.
    """
    found: List[Tuple[Path, str]] = []
    seen = set()

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = sorted({p for pattern in patterns for p in path.glob(pattern) if p.is_file()})
            entries = [(p, p.relative_to(path).as_posix()) for p in candidates]
        else:
            entries = [(path, path.name)]

        for file_path, name in entries:
            key = file_path.resolve()
            if key not in seen:
                seen.add(key)
                found.append((file_path, name))

    return found


async def run_ingest(container: ServiceContainer, args: argparse.Namespace) -> int:
    files = iter_files(args.paths)
    if not files:
        print("No files matched the provided paths.")
        return EXIT_OK

    prefix = args.source_prefix or ""
    orchestrator = container.ingestion_orchestrator
    failures: List[Tuple[Path, str]] = []
    added = duplicates = 0

    for index, (file_path, name) in enumerate(files, start=1):
        source = f"{prefix}{name}"
        print(f"[{index}/{len(files)}] Ingesting {file_path} as {source}")
        try:
            content = file_path.read_text(encoding="utf-8")
            result = await orchestrator.ingest(content, source)
        except (OSError, UnicodeDecodeError, RAGError) as e:
            logger.error(f"Failed to ingest {file_path}: {e}")
            failures.append((file_path, str(e)))
            print(f" ✗ Failed: {e}")
            continue

        if result.duplicate:
            duplicates += 1
        else:
            added += 1
        print(f" ✓ {result.message}")

    print("\nIngestion summary:")
    print(f"  Total files processed: {len(files)}")
    print(f"  Successful ingestions: {added}")
    print(f"  Duplicates skipped:    {duplicates}")
    print(f"  Failures:              {len(failures)}")
    print(f"  Chunks in store:       {container.vector_store.get_chunk_count()}")

    return EXIT_OK if not failures else EXIT_PARTIAL_FAILURE


async def run_ask(container: ServiceContainer, args: argparse.Namespace) -> int:
    orchestrator = container.retrieval_orchestrator
    if args.top_k is not None:
        orchestrator.top_k = args.top_k

    try:
        response = await orchestrator.ask(args.question, conversation_id=args.conversation_id)
    except RAGError as e:
        logger.error(f"Question failed: {e}")
        print(f"Error ({e.category.value}): {e.message}")
        return EXIT_PARTIAL_FAILURE

    print(response.answer)
    if response.sources:
        print("\nSources:")
        for chunk in response.sources:
            heading = chunk.metadata.heading or "No heading"
            print(f"  - {chunk.metadata.source} › {heading}")
    return EXIT_OK


async def run_clear(container: ServiceContainer, args: argparse.Namespace) -> int:
    try:
        result = await container.ingestion_orchestrator.clear_documents()
    except RAGError as e:
        print(f"Error: {e.message}")
        return EXIT_PARTIAL_FAILURE

    print(result.message)
    return EXIT_OK


async def run_stats(container: ServiceContainer, args: argparse.Namespace) -> int:
    stats = container.vector_store.get_stats()
    print(json.dumps(stats.model_dump(), indent=2))
    return EXIT_OK


COMMANDS = {
    "ingest": run_ingest,
    "ask": run_ask,
    "clear": run_clear,
    "stats": run_stats,
}


async def run_command(
    args: argparse.Namespace,
    embedding_provider: Optional[IEmbeddingProvider] = None,
    generation_provider: Optional[IGenerationProvider] = None,
) -> int:
    """Initialize services, run one command and shut down."""
    settings = get_settings(args.env_file)
    if args.store_path:
        settings.vector_store_path = args.store_path

    setup_logging(args.log_level or settings.log_level, settings.log_format)

    container = ServiceContainer()
    try:
        await container.initialize(
            settings,
            embedding_provider=embedding_provider,
            generation_provider=generation_provider,
        )
    except Exception as exc:
        print(f"Failed to initialize services: {exc}")
        return EXIT_INIT_FAILURE

    try:
        return await COMMANDS[args.command](container, args)
    finally:
        await container.shutdown()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser("docchat", formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    p.add_argument("--store-path", default=None, help="Vector store snapshot file (overrides settings)")
    p.add_argument("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--env-file", default=None, help="Load settings from this env file")

    sub = p.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Add documents to the store")
    ingest.add_argument("paths", nargs="+", help="Files or directories to ingest")
    ingest.add_argument("--source-prefix", default=None, help="Logical source prefix for ingested names")

    ask = sub.add_parser("ask", help="Ask a question about the documents")
    ask.add_argument("question", help="Question to answer")
    ask.add_argument("--top-k", type=int, default=None, help="Number of chunks to retrieve")
    ask.add_argument("--conversation-id", default=None, help="Conversation to continue (needs memory enabled)")

    sub.add_parser("clear", help="Remove every document from the store")
    sub.add_parser("stats", help="Show store statistics")

    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
