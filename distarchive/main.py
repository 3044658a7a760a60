#!/usr/bin/env python3
"""Archive creation workflow.

This module handles:
- Resolving the source, target directory and archive file name
- Loading the rule file and choosing the rule checker
- Building the manifest and, when needed, a staged copy of the tree
- Overwrite confirmation for existing archives
- Running the archive command and reporting the result

Example:
    >>> from distarchive.main import run_distarchive
    >>> run_distarchive(args, config, logger)
"""

import argparse
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from distarchive.archive.invoker import ArchiveInvoker, get_size_format
from distarchive.archive.staging import cleanup_staging, needs_staging, stage_manifest
from distarchive.archive.version import get_version
from distarchive.core.constants import (
    DEFAULT_FILENAME_FORMAT,
    DEFAULT_IGNORE_FILE,
    ArchiveFormat,
    ConfigKey,
    ErrorCode,
    MatcherType,
)
from distarchive.core.errors import DistArchiveError
from distarchive.infrastructure.logger import Logger
from distarchive.manifest.builder import Manifest, ManifestBuilder
from distarchive.rules.checker import GitIgnoreChecker
from distarchive.rules.patterns import RuleMatcher, read_rule_lines
from distarchive.traversal.filter import PathChecker

_ARCHIVE_NAME_PATTERN = re.compile(r"(zip$|tar$|tar\.gz$)")
_ABSOLUTE_PATTERN = re.compile(r"(^[a-zA-Z]+:|^/)")


@dataclass
class ArchivePaths:
    """Where the archive is read from and written to."""

    source_dir: str
    destination_dir: str
    archive_file_name: str
    output_dir_name: str

    @property
    def archive_path(self) -> str:
        """Absolute path of the archive file."""
        return os.path.join(self.destination_dir, self.archive_file_name)


def resolve_paths(
    source: str,
    target: Optional[str] = None,
    archive_format: ArchiveFormat = ArchiveFormat.ZIP,
    filename_format: str = DEFAULT_FILENAME_FORMAT,
    plugin_dirname: Optional[str] = None,
    create_target_dir: bool = False,
    version_lookup: Callable[[str], str] = get_version,
) -> ArchivePaths:
    """Work out the source directory, output location and archive name.

    A ``target`` ending in zip, tar or tar.gz names the archive file; a bare
    file name is written next to the source directory. Any other ``target``
    is the output directory. Without a target the archive goes next to the
    source directory.

    Raises:
        DistArchiveError: If the source or target directory does not exist
    """
    source_dir = os.path.realpath(source)
    if not os.path.isdir(source_dir):
        raise DistArchiveError("Provided input path is not a directory.", ErrorCode.NOT_FOUND)

    archive_file_name: Optional[str] = None
    if target:
        if _ARCHIVE_NAME_PATTERN.search(target):
            archive_file_name = os.path.basename(target)
            if archive_file_name == target:
                destination_dir = os.path.dirname(source_dir)
            else:
                destination_dir = os.path.dirname(target)
        else:
            destination_dir = target
    else:
        destination_dir = os.path.dirname(source_dir)

    if not _ABSOLUTE_PATTERN.search(destination_dir):
        destination_dir = os.path.join(os.getcwd(), destination_dir)

    if create_target_dir:
        os.makedirs(destination_dir, exist_ok=True)

    resolved_destination = os.path.realpath(destination_dir)
    if not os.path.isdir(resolved_destination):
        raise DistArchiveError(
            f"Target directory does not exist: {destination_dir}", ErrorCode.NOT_FOUND
        )

    output_dir_name = plugin_dirname.rstrip("/") if plugin_dirname else os.path.basename(source_dir)

    if archive_file_name is None:
        version = version_lookup(source_dir)
        if version:
            stem = filename_format.replace("{name}", output_dir_name).replace("{version}", version)
        else:
            stem = output_dir_name
        archive_file_name = stem + archive_format.extension

    return ArchivePaths(
        source_dir=source_dir,
        destination_dir=resolved_destination,
        archive_file_name=archive_file_name,
        output_dir_name=output_dir_name,
    )


def create_checker(
    source_dir: Union[str, Path], rule_lines: List[str], matcher: MatcherType
) -> PathChecker:
    """Rule checker for the configured matcher type."""
    if matcher is MatcherType.SIMPLE:
        return RuleMatcher(rule_lines, source_dir)
    return GitIgnoreChecker(source_dir, rule_lines)


def confirm_overwrite(archive_path: str, logger: Logger, prompt: Callable[[str], str] = input) -> bool:
    """Ask whether an existing archive should be replaced."""
    logger.warning("Archive file already exists", path=archive_path)
    answer = prompt("Do you want to skip or replace it with a new archive? [s/r]: ")
    return answer.strip().lower() == "r"


class DistArchiveMain:
    """
    Controller for one archive run.

    Owns the checker, manifest and staged copy for the run and removes the
    staged copy on exit.
    """

    def __init__(
        self,
        args: argparse.Namespace,
        config: Dict[str, Any],
        logger: Logger,
        prompt: Callable[[str], str] = input,
    ):
        """
        Initialize the archive controller.

        Args:
            args: Parsed command-line arguments
            config: Merged ``distarchive`` configuration section
            logger: Logger instance
            prompt: Function used to ask about overwriting
        """
        self.args = args
        self.config = config
        self.logger = logger
        self.prompt = prompt
        self.staged_dir: Optional[Path] = None

    def _option(self, key: str, default: Any) -> Any:
        value = self.config.get(key)
        return default if value is None else value

    def build_manifest(self, source_dir: str, checker: PathChecker) -> Manifest:
        """Traverse ``source_dir`` and build its manifest."""
        include_directories = self._option(ConfigKey.INCLUDE_DIRECTORIES, True)
        with self.logger.add_context(source=source_dir):
            manifest = ManifestBuilder(source_dir, checker, include_directories).build()
            self.logger.debug(
                "Manifest ready",
                included=len(manifest.included),
                excluded=len(manifest.excluded),
            )
        return manifest

    def create_archive(self) -> int:
        """
        Create the archive.

        Returns:
            Exit code (0 for success or skip)

        Raises:
            DistArchiveError: If the manifest or archive cannot be built
        """
        archive_format = ArchiveFormat(self._option(ConfigKey.FORMAT, ArchiveFormat.ZIP.value))
        matcher = MatcherType(self._option(ConfigKey.MATCHER, MatcherType.GITIGNORE.value))
        ignore_file = self._option(ConfigKey.IGNORE_FILE, DEFAULT_IGNORE_FILE)

        paths = resolve_paths(
            self.args.path,
            self.args.target,
            archive_format=archive_format,
            filename_format=self._option(ConfigKey.FILENAME_FORMAT, DEFAULT_FILENAME_FORMAT),
            plugin_dirname=self.args.plugin_dirname,
            create_target_dir=self.args.create_target_dir,
        )

        rule_lines = read_rule_lines(paths.source_dir, ignore_file)
        if rule_lines is None:
            self.logger.warning(
                f"No {ignore_file} file found. All files in directory included in archive."
            )
            rule_lines = []

        checker = create_checker(paths.source_dir, rule_lines, matcher)

        manifest: Optional[Manifest] = None
        if needs_staging(paths.source_dir, paths.output_dir_name):
            staged_manifest = self.build_manifest(paths.source_dir, checker)
            self.staged_dir = stage_manifest(
                paths.source_dir, staged_manifest, paths.output_dir_name
            )
            source_path = str(self.staged_dir)
        else:
            source_path = paths.source_dir
            if rule_lines:
                # In-place builds need the rules applied by the archiver
                manifest = self.build_manifest(source_path, checker)

        if os.path.isdir(paths.archive_path):
            raise DistArchiveError(
                f"Archive path is a directory: {paths.archive_path}", ErrorCode.CONFLICT
            )
        if os.path.exists(paths.archive_path):
            should_overwrite = self.args.force or confirm_overwrite(
                paths.archive_path, self.logger, self.prompt
            )
            if not should_overwrite:
                self.logger.info("Archive generation skipped.")
                return 0
            self.logger.info(f"Replacing {paths.archive_path}")

        invoker = ArchiveInvoker(
            archive_format,
            paths.archive_path,
            paths.output_dir_name,
            working_dir=os.path.dirname(source_path),
        )
        invoker.run(manifest)

        size = get_size_format(os.path.getsize(paths.archive_path), 2)
        print(f"Success: Created {paths.archive_file_name} (Size: {size})")
        return 0

    def cleanup(self) -> None:
        """Remove the staged copy, if one was made."""
        if self.staged_dir is not None:
            cleanup_staging(self.staged_dir)
            self.logger.debug("Removed staged copy", path=str(self.staged_dir))
            self.staged_dir = None

    def run(self) -> int:
        """
        Run the archive workflow.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            return self.create_archive()

        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
            return 130

        except DistArchiveError as e:
            self.logger.error(e.message, error_code=e.error_code.name)
            return 1

        finally:
            self.cleanup()


def run_distarchive(args: argparse.Namespace, config: Dict[str, Any], logger: Logger) -> int:
    """
    Main entry point for creating an archive.

    Args:
        args: Parsed command-line arguments
        config: Merged ``distarchive`` configuration section
        logger: Logger instance

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    return DistArchiveMain(args, config, logger).run()


def main():
    """
    Entry point when run as standalone script.

    Typically called via cli.py.
    """
    from distarchive.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
