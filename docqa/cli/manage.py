"""Command-line interface for docqa.

Runs the same ingestion and chat pipelines as the web server, against the
same database, without starting HTTP.

Usage::

    python -m docqa.cli ingest path/to/report.pdf
    python -m docqa.cli documents
    python -m docqa.cli delete <document-id>
    python -m docqa.cli ask "What were the key findings?" --document-id <id>
    python -m docqa.cli chat --document-id <id>

Provider selection follows ``docqa/main.py``: embeddings OpenAI -> Nomic/Ollama,
LLM Anthropic -> OpenAI -> Ollama.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from docqa.config.settings import Settings
from docqa.models.chat import ChatMessage, ChatRole, ErrorEvent, SourcesEvent, TextEvent
from docqa.models.document import ChunkMatch, DocumentStatus
from docqa.services.document_service import PDF_CONTENT_TYPE
from docqa.utils.errors import DocQAError
from docqa.utils.logging import configure_logging

_SOURCE_PREVIEW_CHARS = 120


async def _components(app_settings: Settings) -> dict[str, Any]:
    # Deferred so `--help` does not build providers or the FastAPI app.
    from docqa.main import build_components

    # Importing main applies the server log level; answers own stdout here.
    configure_logging(log_level="WARNING", json_output=False)
    components = build_components(app_settings)
    await components["record_store"].initialize()
    return components


def _print_sources(sources: list[ChunkMatch]) -> None:
    if not sources:
        print("\n(no matching passages; answer is not grounded in your documents)")
        return
    print("\nSources:")
    for i, match in enumerate(sources, start=1):
        preview = " ".join(match.content.split())[:_SOURCE_PREVIEW_CHARS]
        print(f"  [{i}] ({match.similarity:.2f}) {preview}")


async def _stream_to_stdout(chat_service, question: str, document_id: str | None, history) -> str | None:  # noqa: ANN001
    """Print an answer as it streams; return the full text, or ``None`` on error."""
    sources: list[ChunkMatch] = []
    parts: list[str] = []
    async for event in chat_service.stream_answer(question, document_id=document_id, history=history):
        if isinstance(event, SourcesEvent):
            sources = event.sources
        elif isinstance(event, TextEvent):
            parts.append(event.content)
            print(event.content, end="", flush=True)
        elif isinstance(event, ErrorEvent):
            print(f"\nError: {event.message}", file=sys.stderr)
            return None
    print()
    _print_sources(sources)
    return "".join(parts)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, app_settings: Settings) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    components = await _components(app_settings)
    document_service = components["document_service"]
    runner = components["ingestion_runner"]

    content_type = PDF_CONTENT_TYPE if path.suffix.lower() == ".pdf" else "application/octet-stream"
    print(f"Ingesting: {path.name}")
    document = await document_service.upload(path.name, content_type, path.read_bytes())
    print(f"  Document ID: {document.id}")

    result = await runner.wait(document.id)
    if result is None:
        # The run already finished; report what the store recorded.
        status = await document_service.get_status(document.id)
        print(f"\nIngestion status: {status['status']}")
        if status["message"]:
            print(f"  {status['message']}")
        return 0 if status["status"] == DocumentStatus.READY.value else 1

    print("\nIngestion complete:")
    print(f"  Chunks created: {result.chunks_created}")
    print(f"  Batches:        {result.batches}")
    print(f"  Time:           {result.ingestion_time:.2f}s")
    return 0


async def _handle_documents(app_settings: Settings) -> int:
    components = await _components(app_settings)
    documents = await components["document_service"].list_documents()
    if not documents:
        print("No documents uploaded yet.")
        return 0

    print(f"{'ID':<38} {'STATUS':<11} {'SIZE':>10}  NAME")
    for doc in documents:
        size = f"{doc.size:,}" if doc.size is not None else "-"
        print(f"{doc.id:<38} {doc.status.value:<11} {size:>10}  {doc.name}")
    return 0


async def _handle_delete(args: argparse.Namespace, app_settings: Settings) -> int:
    components = await _components(app_settings)
    await components["document_service"].delete_document(args.document_id)
    print(f"Deleted {args.document_id}")
    return 0


async def _handle_ask(args: argparse.Namespace, app_settings: Settings) -> int:
    components = await _components(app_settings)
    chat_service = components["chat_service"]
    if chat_service is None:
        print("Error: no embedding provider available. Set OPENAI_API_KEY or OLLAMA_BASE_URL.", file=sys.stderr)
        return 1
    answer = await _stream_to_stdout(chat_service, args.question, args.document_id, ())
    return 0 if answer is not None else 1


async def _handle_chat(args: argparse.Namespace, app_settings: Settings) -> int:
    components = await _components(app_settings)
    chat_service = components["chat_service"]
    if chat_service is None:
        print("Error: no embedding provider available. Set OPENAI_API_KEY or OLLAMA_BASE_URL.", file=sys.stderr)
        return 1

    print("Ask about your documents. Empty line or Ctrl-D to quit.")
    conversation: list[ChatMessage] = []
    while True:
        try:
            question = await asyncio.to_thread(input, "\n> ")
        except EOFError:
            break
        if not question.strip():
            break

        history = [message.to_turn() for message in conversation]
        answer = await _stream_to_stdout(chat_service, question, args.document_id, history)
        if answer is None:
            continue
        conversation.append(ChatMessage(role=ChatRole.USER, content=question))
        conversation.append(ChatMessage(role=ChatRole.ASSISTANT, content=answer))
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docqa",
        description="Upload PDFs and ask questions about them from the command line.",
    )
    subparsers = parser.add_subparsers(dest="command")

    ingest_parser = subparsers.add_parser("ingest", help="Upload and ingest a PDF")
    ingest_parser.add_argument("file", help="Path to the PDF file")

    subparsers.add_parser("documents", help="List uploaded documents")

    delete_parser = subparsers.add_parser("delete", help="Delete a document and its chunks")
    delete_parser.add_argument("document_id", help="Document ID to delete")

    ask_parser = subparsers.add_parser("ask", help="Ask a single question")
    ask_parser.add_argument("question", help="The question to ask")
    ask_parser.add_argument("--document-id", default=None, help="Restrict search to one document")

    chat_parser = subparsers.add_parser("chat", help="Interactive conversation")
    chat_parser.add_argument("--document-id", default=None, help="Restrict search to one document")

    return parser


async def _dispatch(args: argparse.Namespace, app_settings: Settings) -> int:
    try:
        if args.command == "ingest":
            return await _handle_ingest(args, app_settings)
        if args.command == "documents":
            return await _handle_documents(app_settings)
        if args.command == "delete":
            return await _handle_delete(args, app_settings)
        if args.command == "ask":
            return await _handle_ask(args, app_settings)
        if args.command == "chat":
            return await _handle_chat(args, app_settings)
    except DocQAError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 1


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()

    exit_code = asyncio.run(_dispatch(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
