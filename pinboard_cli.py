"""
Pinboard CLI

Description: Command-line interface for scraping and downloading Pinterest boards
Author: Eric Hiss (GitHub: EricRollei)
Contact: eric@historic.camera, eric@rollei.us
License: Dual License (Non-Commercial and Commercial Use)
Copyright (c) 2025 Eric Hiss. All rights reserved.

Dual License:
1. Non-Commercial Use: This software is licensed under the terms of the
   Creative Commons Attribution-NonCommercial 4.0 International License.
   To view a copy of this license, visit http://creativecommons.org/licenses/by-nc/4.0/

2. Commercial Use: For commercial use, a separate license is required.
   Please contact Eric Hiss at eric@historic.camera or eric@rollei.us for licensing options.

Dependencies:
This code depends on several third-party libraries, each with its own license.
See CREDITS.md for a comprehensive list of dependencies and their licenses.

Third-party code:
- Uses Playwright (Apache 2.0): https://github.com/microsoft/playwright
- See CREDITS.md for complete list of all dependencies
"""

#!/usr/bin/env python3
"""
Standalone CLI for the Pinterest board scraper.

Usage Examples:
  # List every pin of a board
  pinboard-scraper --url "https://www.pinterest.com/nasa/space/"

  # Download the large variant of every pin
  pinboard-scraper --url "https://www.pinterest.com/nasa/space/" --download --output-dir "space"

  # Static strategies only, machine-readable output
  pinboard-scraper --url "https://www.pinterest.com/nasa/space/" --no-browser --json-output

Install Dependencies:
  pip install pinboard-scraper
  playwright install chromium
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from pinboard_scraper import BoardScraper, ScrapeConfig, ScrapeResult, SizeTag
from pinboard_scraper.errors import BoardUnreachableError, InvalidBoardUrlError
from pinboard_scraper.pin_urls import parse_board_url
from pinboard_scraper.utils.persistent_settings import DOWNLOADS_SECTION, get_settings_manager

logger = logging.getLogger("pinboard_scraper.cli")

SIZE_CHOICES = [tag.value for tag in SizeTag]


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        description="Pinterest board scraper - Standalone CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Whole board, browser-assisted
  pinboard-scraper --url "https://www.pinterest.com/nasa/space/"

  # Originals into a folder
  pinboard-scraper --url "https://www.pinterest.com/nasa/space/" --download --size original -o space

  # Quick static pass with a short budget
  pinboard-scraper --url "https://www.pinterest.com/nasa/space/" --no-browser --budget 30
        """
    )

    # Required arguments
    parser.add_argument(
        "--url", "-u",
        required=True,
        help="Pinterest board URL, e.g. https://www.pinterest.com/<user>/<board>/"
    )

    # Output settings
    parser.add_argument(
        "--output-dir", "-o",
        default=None,
        help="Directory for downloaded files (default: persisted setting or pinboard_output)"
    )

    parser.add_argument(
        "--download",
        action="store_true",
        help="Download the images after scraping"
    )

    parser.add_argument(
        "--size",
        choices=SIZE_CHOICES,
        default=None,
        help="Variant to download (default: large)"
    )

    # Scrape limits
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Maximum feed pages to request without a browser (default: 10)"
    )

    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Skip the headless browser harvest"
    )

    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window while harvesting"
    )

    parser.add_argument(
        "--budget",
        type=float,
        default=None,
        help="Wall-clock budget in seconds; partial results are returned when it runs out (default: 150)"
    )

    parser.add_argument(
        "--settings",
        default=None,
        help="Path to the persistent settings JSON file"
    )

    # Output format
    parser.add_argument(
        "--json-output",
        action="store_true",
        help="Output results in JSON format"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only print the final result"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )

    return parser


def validate_args(args) -> None:
    """Validate command line arguments"""
    if parse_board_url(args.url) is None:
        raise ValueError(f"Not a Pinterest board URL: {args.url}")

    if args.max_pages is not None and args.max_pages <= 0:
        raise ValueError("Max pages must be positive")

    if args.budget is not None and args.budget <= 0:
        raise ValueError("Budget must be positive")

    if args.quiet and args.verbose:
        raise ValueError("--quiet and --verbose are mutually exclusive")


def configure_logging(args) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_config(args, settings) -> ScrapeConfig:
    return ScrapeConfig.from_settings(
        settings,
        max_pages=args.max_pages,
        budget_seconds=args.budget,
        use_browser=False if args.no_browser else None,
        headless=False if args.headful else None,
        download_size=args.size,
    )


def format_results(result: ScrapeResult, args, saved_files: Optional[List[str]] = None) -> str:
    """Format scraping results for output"""
    if args.json_output:
        data = result.to_dict()
        if saved_files is not None:
            data["savedFiles"] = saved_files
        return json.dumps(data, indent=2)

    lines = [
        "🎉 Scraping Complete!" if result.success else "🤷 No pins found",
        "=" * 50,
        f"📌 Board: {result.collection.name} ({result.collection.source_url})",
        f"📊 {result.summary}",
        f"🧭 Method: {result.provenance}",
    ]

    if result.completion_percentage is not None:
        lines.append(f"📈 Completion: {result.completion_percentage}%")

    if result.truncated:
        lines.append(f"⏱️  Truncated: {result.truncated}")

    lines.append(f"⏲️  Time: {result.execution_ms / 1000:.1f}s")

    if result.download_report is not None:
        lines.append(f"⬇️  Downloaded: {result.download_report.succeeded}")
        if result.download_report.failed:
            lines.append(f"❌ Failed: {result.download_report.failed}")

    if saved_files:
        lines.append(f"📁 Saved {len(saved_files)} file(s)")

    if result.items:
        lines.extend([
            "",
            "📋 Sample Pins:",
            *[f"  • {item.id}: {item.thumbnail}" for item in result.items[:5]]
        ])

        if len(result.items) > 5:
            lines.append(f"  ... and {len(result.items) - 5} more")

    return "\n".join(lines)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function; returns the process exit code"""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        validate_args(args)
    except ValueError as e:
        print(f"❌ Argument error: {e}")
        return 1

    configure_logging(args)
    settings = get_settings_manager(args.settings)
    config = build_config(args, settings)
    logger.debug("Settings: %s", json.dumps(config.to_dict(), indent=2))

    if not args.quiet and not args.json_output:
        print(f"🔍 Scraping {args.url} ...")

    scraper = BoardScraper(config)
    try:
        result = await scraper.scrape(args.url)
    except (InvalidBoardUrlError, BoardUnreachableError) as e:
        print(f"❌ Scraping failed: {e.message}")
        return 1

    saved_files = None
    if args.download and result.items:
        output_dir = args.output_dir or settings.get(DOWNLOADS_SECTION, "output_dir", "pinboard_output")
        report = await scraper.download(result, config.download_size_tag)
        saved_files = report.save_to(output_dir, result.items)
        if args.output_dir:
            settings.set(DOWNLOADS_SECTION, "output_dir", args.output_dir)

    print(format_results(result, args, saved_files))
    return 0


def run() -> None:
    """Console-script entry point"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n⏹️  Scraping interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    run()
