from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from app.core.config import settings
from app.core.errors import StudyDocsError
from app.modules.documents.extractor import TextExtractor, guess_media_type
from app.modules.documents.generator import FlashCardGenerator


def _read_file(args: argparse.Namespace) -> tuple[bytes, str | None]:
    path = Path(args.file)
    if not path.is_file():
        raise SystemExit(f"File not found: {path}")
    media_type = args.media_type or guess_media_type(path.name)
    return path.read_bytes(), media_type


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="studydocs", description="Document text extraction and flash card CLI"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    e = sub.add_parser("extract", help="Print the plain text extracted from a file")
    e.add_argument("file", help="Path to a .txt, .pdf or .docx file")
    e.add_argument("--media-type", help="Override the media type guessed from the extension")

    g = sub.add_parser("generate", help="Generate flash cards for a file")
    g.add_argument("file", help="Path to a .txt, .pdf or .docx file")
    g.add_argument("--media-type", help="Override the media type guessed from the extension")

    args = parser.parse_args(argv)
    data, media_type = _read_file(args)
    extractor = TextExtractor()
    try:
        text = extractor.extract(data, media_type)
        if args.cmd == "extract":
            print(text)
            return 0
        if args.cmd == "generate":
            generator = FlashCardGenerator.from_settings(settings.generation)
            deck = asyncio.run(generator.generate(text))
            print(json.dumps(deck.model_dump(by_alias=True), indent=2))
            return 0
    except StudyDocsError as err:
        print(f"error: {err.message}")
        return 1

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
