"""Command-line entry point for the document study assistant."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List

from .config import FLASHCARD_STYLES, Settings
from .errors import PipelineError
from .pipeline import GenerationPipeline, format_result
from .types import GenerationOptions, GenerationRequest, TaskKind


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with, quiz on, or make flashcards from an uploaded PDF")
    parser.add_argument("--upload-dir", type=Path, default=None, help="Directory holding uploaded PDFs.")
    parser.add_argument("--top-k", type=int, default=None, help="Number of passages used as context.")
    parser.add_argument("--max-tokens", type=int, default=None, help="Maximum tokens in the model reply.")
    parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds per load or model call.")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    chat = subparsers.add_parser("chat", help="Ask a question about a document.")
    chat.add_argument("filename", type=str, help="Uploaded PDF filename.")
    chat.add_argument("message", type=str, help="Message to answer.")

    quiz = subparsers.add_parser("quiz", help="Generate a multiple-choice quiz.")
    quiz.add_argument("filename", type=str, help="Uploaded PDF filename.")

    flashcards = subparsers.add_parser("flashcards", help="Generate flashcards.")
    flashcards.add_argument("filename", type=str, help="Uploaded PDF filename.")
    flashcards.add_argument("--style", choices=FLASHCARD_STYLES, default=None, help="Flashcard payload style.")
    flashcards.add_argument("--count", type=int, default=None, help="Number of flashcards to request.")

    for sub in (chat, quiz, flashcards):
        sub.add_argument("--model", type=str, default=None, help="gpt-3.5, gpt-4, gpt-4o, gemini or llama3.")

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides = {
        "upload_dir": args.upload_dir,
        "top_k": args.top_k,
        "max_tokens": args.max_tokens,
        "timeout": args.timeout,
        "flashcard_style": getattr(args, "style", None),
        "flashcard_count": getattr(args, "count", None),
    }
    return replace(settings, **{key: value for key, value in overrides.items() if value is not None})


def run(args: argparse.Namespace) -> int:
    settings = build_settings(args)
    pipeline = GenerationPipeline(settings)
    request = GenerationRequest(
        filename=args.filename,
        task=TaskKind(args.command),
        model_id=args.model,
        message=getattr(args, "message", None),
    )
    options = GenerationOptions(max_tokens=settings.max_tokens, timeout=settings.timeout)
    try:
        result = pipeline.run_sync(request, options)
    except PipelineError as exc:
        print(json.dumps(exc.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 1
    print(json.dumps(format_result(result), indent=2, ensure_ascii=False))
    return 0


def main(argv: List[str] | None = None) -> None:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        code = run(args)
    except ValueError as exc:
        print(json.dumps({"error": str(exc), "stage": "request"}), file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
