#!/usr/bin/env python3
"""
Google Drive Docs Site Builder - Main CLI Entry Point

This script builds a static documentation website from a Google Drive folder:
every Google Doc in the folder tree becomes one HTML page, with its images
downloaded into the site's asset directory.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to Python path for relative imports
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

from config_loader import ConfigLoader, get_nested
from fetchers import CacheManager
from logger import setup_logging, log_section, log_config
from orchestrator import SiteBuildOrchestrator, format_report, save_report

# Version
__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='gdocs-site',
        description="Build a static documentation site from a Google Drive folder of Google Docs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build from environment variables (.env honored)
  gdocs-site

  # Build with a configuration file
  gdocs-site --config config.yaml

  # Serve the site under a sub-path
  gdocs-site --path-prefix /docs/

  # Collect documents without rendering pages
  gdocs-site --dry-run -v

  # Ignore cached API responses for this run
  gdocs-site --clear-cache -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration YAML file (default: config.yaml if present, else environment only)'
    )

    parser.add_argument(
        '--folder-id',
        type=str,
        help='Google Drive folder ID to build from (overrides GOOGLE_DRIVE_FOLDER)'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Site output directory (default: ./_site); images go to <output-dir>/img'
    )

    parser.add_argument(
        '--path-prefix',
        type=str,
        help='URL prefix the site is served under (overrides PATH_PREFIX)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Collect documents and images but do not render pages'
    )

    parser.add_argument(
        '--clear-cache',
        action='store_true',
        help='Delete cached API responses before building'
    )

    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable the response cache for this run'
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Write the build report as JSON to this path'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write logs to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def load_configuration(args: argparse.Namespace) -> dict:
    """Load config from file (or environment), apply CLI overrides and validate."""
    config_path = args.config
    if config_path is None and os.path.exists('config.yaml'):
        config_path = 'config.yaml'

    if config_path:
        config = ConfigLoader.load(config_path)
    else:
        config = ConfigLoader.from_environment()

    config = ConfigLoader.merge_with_args(config, args)
    ConfigLoader.validate(config)
    return config


def run_build(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the complete build pipeline."""
    if args.clear_cache:
        CacheManager(config).clear()

    orchestrator = SiteBuildOrchestrator(config, logger=logger)
    report = orchestrator.build(dry_run=args.dry_run)

    print("\n" + format_report(report))

    if args.report:
        save_report(report, args.report)
        logger.info(f"Build report saved to {args.report}")

    if not args.dry_run:
        logger.info(f"Site written to {get_nested(config, 'site.output_directory')}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(verbosity=args.verbose, log_file=args.log_file)
    logger = logging.getLogger('gdocs_site.build')

    try:
        log_section("Google Drive Docs Site Builder")
        logger.info(f"Version: {__version__}")

        config = load_configuration(args)

        # Reconfigure logging with config file settings
        setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        log_config(config)

        return run_build(config, args, logger)

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Build interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Build failed: {e}", exc_info=args.verbose >= 2)
        return 1


if __name__ == "__main__":
    sys.exit(main())
