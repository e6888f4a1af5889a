"""ElvUp — entry point."""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import TextIO

from elvup.branding import AppBranding
from elvup.config.settings import UpdaterSettings
from elvup.core.errors import ConfigError, ElvUpError, PartialInstall
from elvup.core.update_checker import UpdateChecker

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PARTIAL_INSTALL = 3

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


@dataclass
class LoggingConfig:
    """Where and how verbosely to log."""
    level: int = logging.INFO
    stream: TextIO | None = None    # None = stderr
    log_file: str | None = None


def setup_logging(config: LoggingConfig):
    """Configure logging to console and, optionally, a file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(config.stream)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file, encoding='utf-8'))

    logging.basicConfig(
        level=config.level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='elvup', description=AppBranding.description())
    parser.add_argument(
        'addons_path', nargs='?', default=None,
        help="Path to the WoW AddOns directory (default: platform install location)",
    )
    parser.add_argument(
        '-v', '--verbose', action='count', default=None,
        help="Info logging by default; -v adds debug, -vv trace",
    )
    parser.add_argument('--settings', metavar='PATH', help="JSON settings file")
    parser.add_argument('--metadata-url', metavar='URL', help="Release metadata endpoint")
    parser.add_argument('--check', action='store_true',
                        help="Only report whether an update is available")
    parser.add_argument('--keep-scratch', action='store_true',
                        help="Keep the scratch directory for diagnostics")
    parser.add_argument('--log-file', metavar='PATH', help="Also write the log to this file")
    parser.add_argument('--version', action='version',
                        version=f"{AppBranding.APP_NAME} {AppBranding.VERSION}")
    return parser


def load_settings(args: argparse.Namespace) -> UpdaterSettings:
    """Settings file first, then command-line overrides."""
    settings = UpdaterSettings.load(args.settings)
    if args.addons_path:
        settings.addons_path = args.addons_path
    if args.verbose is not None:
        settings.verbosity = args.verbose
    if args.metadata_url:
        settings.metadata_url = args.metadata_url
    if args.keep_scratch:
        settings.keep_scratch = True
    if args.log_file:
        settings.log_file = args.log_file
    return settings


def run(argv: list[str] | None = None, stream: TextIO | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(args)

    try:
        level = settings.log_level
    except ConfigError as e:
        parser.error(str(e))

    try:
        setup_logging(LoggingConfig(level=level, stream=stream, log_file=settings.log_file))
    except OSError as e:
        parser.error(f"cannot open log file {settings.log_file}: {e.strerror or e}")

    logger = logging.getLogger(__name__)
    logger.debug("settings: %s", settings)

    try:
        result = UpdateChecker(settings).run(check_only=args.check)
    except PartialInstall as e:
        logger.error("%s", e)
        logger.error("The add-ons directory is now partially upgraded; rerun to finish")
        return EXIT_PARTIAL_INSTALL
    except ElvUpError as e:
        logger.error("%s", e)
        return EXIT_FAILURE
    except OSError as e:
        logger.error("Unexpected I/O error: %s", e)
        return EXIT_FAILURE

    if result.installed:
        logger.info("Done: %s %s installed (%s)", AppBranding.ADDON_NAME,
                    result.latest_version, ', '.join(result.directories))
    return EXIT_OK


def main():
    sys.exit(run())


if __name__ == '__main__':
    main()
