"""Upload one file with the configured provider and print its signed URL. Run with: python -m conversion_storage FILE --job-id ID"""

import argparse
import logging
import os
import sys

from conversion_storage.config import get_settings
from conversion_storage.errors import StorageError
from conversion_storage.providers import build_storage_provider

logger = logging.getLogger("conversion_storage.cli")


def _configure_logging(verbose: bool) -> None:
    """Log to stderr so stdout carries only the URL."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%dT%H:%M:%S")
    )
    root = logging.getLogger()
    root.setLevel(logging.INFO if verbose else logging.WARNING)
    root.addHandler(handler)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="conversion_storage", description=__doc__)
    parser.add_argument("file", help="Path of the file to upload")
    parser.add_argument("--job-id", required=True, help="Job identifier, used as a path segment")
    parser.add_argument("--name", help="Stored filename (default: basename of FILE)")
    parser.add_argument("--provider", help="Override STORAGE_PROVIDER (gcp | aws | azure | oracle | do | minio)")
    parser.add_argument("--no-verify", action="store_true", help="Skip the bucket reachability check")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log upload events")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    _configure_logging(args.verbose)

    settings = get_settings()
    if args.provider:
        settings = settings.model_copy(update={"storage_provider": args.provider.strip().lower()})

    try:
        provider = build_storage_provider(
            settings.storage_provider,
            settings.storage_properties(),
            verify=not args.no_verify,
        )
    except StorageError as e:
        logger.error("Storage provider %s could not be configured", settings.storage_provider)
        print(e.message, file=sys.stderr)
        return 2

    try:
        with open(args.file, "rb") as stream:
            size = os.fstat(stream.fileno()).st_size
            result = provider.put_stream(stream, size, args.name or os.path.basename(args.file), args.job_id)
    except OSError as e:
        print(f"Cannot read {args.file}: {e.strerror or e}", file=sys.stderr)
        return 1

    if not result.ok:
        print(f"Upload of {result.key} failed: {result.error.message}", file=sys.stderr)
        return 1
    print(result.url)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
