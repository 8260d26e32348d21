"""
Ask questions about web pages (and local files) from the command line.

This script:
    1. Fetches the given URLs and decodes any local files
    2. Builds (or reuses) a vector index for them
    3. Runs a short conversation, one question per line of input

Run:
    python examples/ask_urls.py https://en.wikipedia.org/wiki/Eiffel_Tower
    python examples/ask_urls.py --file notes.md --strategy mmr
    python examples/ask_urls.py URL --provider anthropic --model claude-sonnet-4-5-20250929
"""

import argparse
import asyncio
import mimetypes
from pathlib import Path

from rag_agent import (
    AgentConfig,
    GradedRAG,
    LLMConfig,
    PipelineConfig,
    RagConfig,
    RAGAgentError,
    Sources,
    Turn,
    UploadedFile,
    decode_upload,
    describe_error,
)
from rag_agent.utils.helpers import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask questions about web pages and documents.")
    parser.add_argument("urls", nargs="*", help="Up to 3 URLs to answer from")
    parser.add_argument("--file", action="append", default=[], help="Local PDF, .txt or .md file")
    parser.add_argument("--provider", default="openai", help="openai, anthropic or ollama")
    parser.add_argument("--model", default="gpt-4.1", help="Chat model name")
    parser.add_argument("--strategy", choices=["similarity", "mmr"], default=None)
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--strict", action="store_true", help="Replace off-topic answers")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args()


def load_file(path: str):
    mime_type = mimetypes.guess_type(path)[0] or "text/plain"
    if path.endswith(".md"):
        mime_type = "text/markdown"
    return decode_upload(UploadedFile(
        file_name=Path(path).name,
        mime_type=mime_type,
        data=Path(path).read_bytes(),
    ))


async def chat(args: argparse.Namespace) -> None:
    config = AgentConfig(
        llm=LLMConfig(provider=args.provider, model_name=args.model),
        pipeline=PipelineConfig(grading_policy="strict" if args.strict else "lenient"),
    )
    rag = GradedRAG(config)
    sources = Sources(
        urls=args.urls,
        uploaded_documents=[load_file(path) for path in args.file],
    )
    rag_config = RagConfig(chunk_size=args.chunk_size, retriever_strategy=args.strategy)

    history: list[Turn] = []
    while True:
        try:
            question = input("\nQ: ").strip()
        except EOFError:
            break
        if not question:
            break

        try:
            response = await rag.run_pipeline(question, sources, rag_config, history)
        except RAGAgentError as exc:
            print(f"Error: {describe_error(exc)}")
            continue

        print(f"A: {response.answer}")
        print(f"   Passages used: {len(response.documents)}")
        print(f"   Verdict: {response.metadata['answer_verdict']}")

        history.append(Turn(role="user", content=question))
        history.append(Turn(role="assistant", content=response.answer or ""))


def main():
    args = parse_args()
    configure_logging(args.log_level)
    asyncio.run(chat(args))


if __name__ == "__main__":
    main()
