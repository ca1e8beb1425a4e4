"""CLI job that writes the directory sitemap to disk."""

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from signs_directory.core.config import get_settings
from signs_directory.directory.errors import FetchFailed
from signs_directory.directory.factory import build_service
from signs_directory.directory.service import DirectoryService
from signs_directory.directory.sitemap import render_sitemap

logger = logging.getLogger(__name__)


def build_sitemap_job(*, output: Path, base_url: str, service: Optional[DirectoryService] = None) -> int:
    service = service or build_service()
    entries = service.sitemap_entries(base_url)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(render_sitemap(entries))
    logger.info("Wrote %d sitemap entries to %s", len(entries), output)
    return len(entries)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate the directory sitemap.xml")
    parser.add_argument("--output", type=Path, default=Path("sitemap.xml"), help="Where to write the sitemap")
    parser.add_argument("--base-url", dest="base_url", default=None, help="Site origin, defaults to SITE_BASE_URL")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    base_url = args.base_url or get_settings().site_base_url

    try:
        build_sitemap_job(output=args.output, base_url=base_url)
    except FetchFailed as exc:
        logger.error("Sitemap generation aborted: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
