"""CLI command importing one curator document and printing the upload envelope."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import mimetypes
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from taxodoc.config import ImportSettings
from taxodoc.importing.service import CatalogImporter, UploadRequest


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Parse a DOCX/PDF/HTML document into catalog entries")
    parser.add_argument("--path", required=True, help="Document to import")
    parser.add_argument("--collection", default=None, help="Collection id or title (created when missing)")
    parser.add_argument("--commit", action="store_true", help="Persist entries instead of previewing")
    parser.add_argument("--db-path", default=None, help="SQLite catalog path (overrides TAXODOC_DB_PATH)")
    parser.add_argument("--domain", default=None, help="Domain for newly created collections")
    parser.add_argument("--kingdom", default=None, help="Kingdom for newly created collections")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline progress to stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO if args.verbose else logging.WARNING,
    )

    try:
        settings = ImportSettings.from_env()
    except ValueError as exc:
        print(json.dumps({"ok": False, "error": f"Configuration error: {exc}"}, ensure_ascii=False, indent=2))
        return 1
    if args.db_path:
        settings = dataclasses.replace(settings, db_path=Path(args.db_path))

    source_path = Path(args.path)
    try:
        payload = source_path.read_bytes()
    except OSError as exc:
        print(json.dumps({"ok": False, "error": f"Failed to read {source_path}: {exc}"}, ensure_ascii=False, indent=2))
        return 1

    mime_type, _ = mimetypes.guess_type(source_path.name)
    request = UploadRequest(
        file_name=source_path.name,
        payload=payload,
        collection=args.collection,
        commit=args.commit,
        mime_type=mime_type or "",
        domain=args.domain,
        kingdom=args.kingdom,
    )
    envelope = CatalogImporter(settings).handle(request)
    print(json.dumps(envelope.to_dict(), ensure_ascii=False, indent=2))
    return 0 if envelope.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
