#!/usr/bin/env python3
"""CLI entry point for downloading files with grabfile.

Each URL is fetched once into ``--dest``; the local filename comes from the
server's Content-Disposition header or the URL path. Ctrl-C cancels the
transfer in progress and removes its partial file.
"""
import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

import httpx

from grabfile.config import CHECKSUM_ALGORITHM, DEST_DIR, DOWNLOAD_TIMEOUT
from grabfile.download import checksum, download, verify_checksum, write_manifest
from grabfile.errors import GrabError, TransferCancelled

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Download files over HTTP.")
    parser.add_argument("urls", nargs="+", metavar="URL", help="URL(s) to download")
    parser.add_argument(
        "--dest",
        type=Path,
        default=DEST_DIR,
        help=f"Destination directory (default: {DEST_DIR})",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-download even if files already exist",
    )
    parser.add_argument(
        "--algorithm",
        default=CHECKSUM_ALGORITHM,
        help=f"hashlib algorithm for file checksums (default: {CHECKSUM_ALGORITHM})",
    )
    parser.add_argument(
        "--checksum",
        default=None,
        help="Expected hex digest; only valid with a single URL",
    )
    parser.add_argument(
        "--manifest",
        action="store_true",
        help="Write manifest.json with file hashes to the destination directory",
    )
    args = parser.parse_args(argv)

    if args.checksum and len(args.urls) != 1:
        parser.error("--checksum requires exactly one URL")

    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    dest_dir: Path = args.dest
    files_with_hashes: list[tuple[Path, str | None]] = []

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        with httpx.Client(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
            for url in args.urls:
                result = download(
                    client,
                    url,
                    dest_dir,
                    force=args.force,
                    cancel=cancel,
                    algorithm=args.algorithm,
                    expected_checksum=args.checksum,
                    delete_on_error=True,
                )
                if result.skipped:
                    logger.info("Already present: %s", result.path)
                    if args.checksum:
                        existing = verify_checksum(
                            result.path, args.algorithm, args.checksum, cancel=cancel
                        )
                    else:
                        existing = checksum(result.path, args.algorithm, cancel=cancel)
                    files_with_hashes.append((result.path, existing.hex()))
                    continue
                digest = result.digest.hex() if result.digest else None
                logger.info(
                    "Saved %s (%d bytes, %s %s)",
                    result.path,
                    result.bytes_written,
                    args.algorithm,
                    digest,
                )
                files_with_hashes.append((result.path, digest))

        if args.manifest:
            manifest_path = dest_dir / "manifest.json"
            write_manifest(
                manifest_path,
                args.urls[0],
                files_with_hashes,
                base_dir=dest_dir,
                sources=list(args.urls),
            )
            logger.info("Wrote manifest to %s", manifest_path)

    except TransferCancelled as e:
        logger.warning("Cancelled: %s", e)
        return 130
    except httpx.HTTPError as e:
        logger.error("HTTP error during download: %s", e)
        return 1
    except GrabError as e:
        logger.error("Download failed: %s", e)
        return 1
    except OSError as e:
        logger.error("File or I/O error during download: %s", e)
        return 1
    except ValueError as e:
        logger.error("Invalid checksum option: %s", e)
        return 1
    except Exception as e:
        logger.exception("Unexpected error during download: %s", e)
        return 1
    finally:
        signal.signal(signal.SIGINT, previous)
    return 0


if __name__ == "__main__":
    sys.exit(main())
