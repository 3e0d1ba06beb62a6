"""
Command-line access to the storage client.

Usage:
    b2store upload 42 ./photo.jpg
    b2store delete 42 photo.jpg
    b2store url 42 photo.jpg

Requires:
    - .env file (or environment) with B2 credentials and bucket settings
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from .config import get_settings
from .core.storage import StorageError
from .infrastructure.b2 import create_storage_client

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="b2store",
        description="Upload, delete and link files in a Backblaze B2 bucket",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Upload a local file")
    upload.add_argument("owner_id", help="Owner id, used as the name prefix")
    upload.add_argument("path", help="Local file to upload")
    upload.add_argument("--content-type", default=None, help="Override the detected MIME type")
    upload.add_argument(
        "--cache-control", type=int, default=None,
        help="Cache-Control max-age in seconds (default from settings)",
    )

    delete = subparsers.add_parser("delete", help="Delete an uploaded file")
    delete.add_argument("owner_id")
    delete.add_argument("filename")

    url = subparsers.add_parser("url", help="Print the public URL of a file")
    url.add_argument("owner_id")
    url.add_argument("filename")
    url.add_argument("--fallback", default="", help="URL to print if the store can't be reached")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()
    settings = get_settings()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: Missing required configuration: {', '.join(missing)}")
        return 1

    try:
        with create_storage_client(settings.to_b2_config()) as client:
            if args.command == "upload":
                result = client.upload_file(
                    args.owner_id,
                    args.path,
                    content_type=args.content_type,
                    cache_control_seconds=args.cache_control,
                )
                if result is None:
                    print("Local storage enabled, nothing uploaded")
                else:
                    print(f"Uploaded {result.file_name} ({result.file_id})")

            elif args.command == "delete":
                if client.delete(args.owner_id, args.filename):
                    print(f"Deleted {args.owner_id}/{args.filename}")
                else:
                    print(f"Not found: {args.owner_id}/{args.filename}")

            elif args.command == "url":
                print(client.resolve_url(args.owner_id, args.filename, args.fallback))

    except (StorageError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
