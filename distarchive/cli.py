#!/usr/bin/env python3
"""Command-line interface for distarchive.

This module provides the CLI for creating distribution archives:
- Argument parsing and validation
- Configuration file loading
- Logging setup
- Archiver availability checks

Example:
    >>> from distarchive.cli import parse_arguments
    >>> args = parse_arguments(['/srv/plugin', '--format', 'targz'])
"""

import argparse
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from distarchive.core.constants import DISTARCHIVE_VERSION, ArchiveFormat, MatcherType
from distarchive.core.validators import ValidationError, validate_config
from distarchive.infrastructure.config_manager import (
    CONFIG_SCHEMA,
    ROOT_KEY,
    ConfigError,
    ConfigManager,
    ConfigSource,
)
from distarchive.infrastructure.logger import Logger, set_global_logger

VERSION = DISTARCHIVE_VERSION
DESCRIPTION = "distarchive - Create a distribution archive based on a project's .distignore file"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If the source or config path is invalid
    """
    parser = argparse.ArgumentParser(
        prog="distarchive",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Archive next to the project, named after its directory and version
  distarchive wp-content/plugins/hello-world

  # Write a tarball into an existing directory
  distarchive ./hello-world /tmp/builds --format targz

  # Choose the archive file name
  distarchive ./hello-world hello-world-latest.zip

  # Extract to a different directory name
  distarchive ./hello-world --plugin-dirname hello
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )

    parser.add_argument(
        "path",
        metavar="PATH",
        help="Path to the project that includes a .distignore file",
    )

    parser.add_argument(
        "target",
        metavar="TARGET",
        nargs="?",
        default=None,
        help="Output directory, or path and file name for the archive",
    )

    archive_group = parser.add_argument_group("archive options")

    archive_group.add_argument(
        "--format",
        choices=[f.value for f in ArchiveFormat],
        default=None,
        help="Archive format (default: zip)",
    )

    archive_group.add_argument(
        "--filename-format",
        metavar="FORMAT",
        default=None,
        help="Archive file name template; substitutes {name} and {version} "
        '(default: "{name}.{version}")',
    )

    archive_group.add_argument(
        "--plugin-dirname",
        metavar="SLUG",
        default=None,
        help="Directory name the archive extracts to (default: project directory name)",
    )

    archive_group.add_argument(
        "--create-target-dir",
        action="store_true",
        help="Create the target directory if it does not exist",
    )

    archive_group.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing archive without asking",
    )

    archive_group.add_argument(
        "--matcher",
        choices=[m.value for m in MatcherType],
        default=None,
        help="Rule semantics: full gitignore (default) or simple any-match",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write log output to this file",
    )

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Raises:
        CLIError: If validation fails
    """
    source_path = Path(args.path)

    if not source_path.exists() or not source_path.is_dir():
        raise CLIError(f"Provided input path is not a directory: {args.path}")

    if args.config:
        config_path = Path(args.config)

        if not config_path.exists():
            raise CLIError(f"Configuration file does not exist: {args.config}")

        if not config_path.is_file():
            raise CLIError(f"Configuration path is not a file: {args.config}")


def build_config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build configuration overrides from command-line arguments.

    Only options given on the command line are set, so config file and
    environment values still apply to the rest.
    """
    config: Dict[str, Any] = {}

    if args.format:
        config["format"] = args.format
    if args.filename_format:
        config["filename_format"] = args.filename_format
    if args.matcher:
        config["matcher"] = args.matcher

    logging_config: Dict[str, Any] = {}
    if args.debug:
        logging_config["level"] = "DEBUG"
    if args.log_file:
        logging_config["file"] = args.log_file
    if logging_config:
        config["logging"] = logging_config

    return {ROOT_KEY: config}


def load_configuration(args: argparse.Namespace) -> ConfigManager:
    """
    Assemble configuration from defaults, system and user config files,
    environment and arguments.

    Raises:
        CLIError: If the configuration file cannot be loaded or is invalid
    """
    config = ConfigManager()

    try:
        config.load_system_config()
        if args.config:
            config.load_file(args.config, ConfigSource.USER_CONFIG)
        config.load_dict(build_config_from_args(args), ConfigSource.CLI_ARGS)
        config.validate_schema(CONFIG_SCHEMA)
        validate_config(config.section())
    except (ConfigError, ValidationError) as e:
        raise CLIError(f"Invalid configuration: {e}")

    return config


def setup_logging(config: Dict[str, Any]) -> Logger:
    """
    Create the process-wide logger from the ``distarchive`` config section.

    Returns:
        Configured logger instance
    """
    logging_config = config.get("logging") or {}
    logger = Logger("distarchive", level=logging_config.get("level") or "INFO")

    log_file = logging_config.get("file")
    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))

    set_global_logger(logger)
    return logger


def validate_runtime_environment(archive_format: ArchiveFormat) -> None:
    """
    Check that the archiver binary for the chosen format is installed.

    Raises:
        CLIError: If the binary is not on PATH
    """
    binary = "zip" if archive_format is ArchiveFormat.ZIP else "tar"
    if shutil.which(binary) is None:
        raise CLIError(f"'{binary}' command not found\nInstall {binary} to create {archive_format.value} archives")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Parses arguments, assembles configuration and logging, then hands over
    to ``distarchive.main.run_distarchive``.
    """
    try:
        args = parse_arguments(argv)

        config = load_configuration(args).section()

        logger = setup_logging(config)

        validate_runtime_environment(ArchiveFormat(config.get("format") or ArchiveFormat.ZIP.value))

        from distarchive.main import run_distarchive

        return run_distarchive(args, config, logger)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
