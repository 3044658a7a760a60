#!/usr/bin/env python3
"""Build and run the zip/tar command that writes the archive.

Compression is left to the system ``zip`` and ``tar`` binaries. When the
archive is built in place from the source directory, the manifest is handed
over as an include list (zip) or an exclude list (tar); a staged copy is
archived whole.

Example:
    >>> invoker = ArchiveInvoker(ArchiveFormat.ZIP, "/srv/plugin.zip", "plugin")
    >>> invoker.build_command(manifest=None)
    ['zip', '-r', '/srv/plugin.zip', 'plugin']
"""

import math
import os
import platform
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from distarchive.core.constants import ArchiveFormat, ErrorCode
from distarchive.core.errors import ArchiveError, DistArchiveError
from distarchive.infrastructure.logger import get_logger
from distarchive.manifest.builder import Manifest

INCLUDE_LIST_NAME = "include-file-list.txt"
EXCLUDE_LIST_NAME = "exclude-file-list.txt"

_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def escape_exclude_pattern(path: str) -> str:
    """Escape tar wildcard characters so the path matches literally."""
    for char in ("\\", "*", "?", "["):
        path = path.replace(char, "\\" + char)
    return path


def get_size_format(num_bytes: int, decimals: int = 0) -> str:
    """Render a byte count in the largest decimal unit it fits (B to TB).

    Example:
        >>> get_size_format(1_500_000, 2)
        '1.5 MB'
    """
    size_key = int(math.floor(math.log(num_bytes) / math.log(1000))) if num_bytes > 0 else 0
    size_key = min(max(size_key, 0), len(_SIZE_UNITS) - 1)
    value = round(num_bytes / (1000**size_key), decimals)
    return f"{value:g} {_SIZE_UNITS[size_key]}"


class ArchiveInvoker:
    """Shell out to zip or tar for one archive."""

    def __init__(
        self,
        archive_format: ArchiveFormat,
        archive_path: Union[str, Path],
        output_dir_name: str,
        working_dir: Optional[Union[str, Path]] = None,
    ):
        """Initialize archive invoker.

        Args:
            archive_format: zip or targz
            archive_path: Absolute path of the archive to write
            output_dir_name: Directory name the archive extracts to
            working_dir: Parent directory of the tree being archived
        """
        self.archive_format = archive_format
        self.archive_path = os.fspath(archive_path)
        self.output_dir_name = output_dir_name
        self.working_dir = os.fspath(working_dir) if working_dir is not None else None
        self._logger = get_logger()

    def _prefixed(self, relative_paths: List[str]) -> List[str]:
        return [self.output_dir_name + relative_path for relative_path in relative_paths]

    def write_include_list(self, manifest: Manifest, list_dir: Union[str, Path]) -> Path:
        """Write the zip include list (one prefixed path per line)."""
        path = Path(list_dir) / INCLUDE_LIST_NAME
        path.write_text("\n".join(self._prefixed(manifest.included)).strip(), encoding="utf-8")
        return path

    def write_exclude_list(self, manifest: Manifest, list_dir: Union[str, Path]) -> Path:
        """Write the tar exclude list (one escaped, prefixed path per line)."""
        path = Path(list_dir) / EXCLUDE_LIST_NAME
        excludes = [escape_exclude_pattern(p) for p in self._prefixed(manifest.excluded)]
        path.write_text("\n".join(excludes).strip(), encoding="utf-8")
        return path

    def build_command(
        self, manifest: Optional[Manifest], list_dir: Optional[Union[str, Path]] = None
    ) -> List[str]:
        """Build the archive command.

        Args:
            manifest: Manifest for an in-place build, or None to archive the
                whole output directory (staged copy or no rules)
            list_dir: Directory for the include/exclude list file

        Returns:
            Command as an argument list
        """
        if manifest is None:
            if self.archive_format is ArchiveFormat.ZIP:
                return ["zip", "-r", self.archive_path, self.output_dir_name]
            return ["tar", "-zcvf", self.archive_path, self.output_dir_name]

        if list_dir is None:
            raise ValueError("list_dir is required when archiving from a manifest")

        if self.archive_format is ArchiveFormat.ZIP:
            include_list = self.write_include_list(manifest, list_dir)
            return [
                "zip",
                "--filesync",
                "-r",
                self.archive_path,
                self.output_dir_name,
                f"-i@{include_list}",
            ]

        exclude_list = self.write_exclude_list(manifest, list_dir)
        command = ["tar"]
        # GNU tar matches exclude patterns anywhere unless anchored
        if platform.system() == "Linux":
            command.append("--anchored")
        command += [f"--exclude-from={exclude_list}", "-zcvf", self.archive_path, self.output_dir_name]
        return command

    def run(self, manifest: Optional[Manifest] = None) -> str:
        """Create the archive.

        Args:
            manifest: Manifest for an in-place build, or None

        Returns:
            Path of the written archive

        Raises:
            ArchiveError: If the command exits non-zero
            DistArchiveError: If the archiver binary is not installed
        """
        list_dir = tempfile.mkdtemp(prefix="distarchive-lists-")
        try:
            command = self.build_command(manifest, list_dir)
            self._logger.debug("Running archive command", command=" ".join(command))
            try:
                result = subprocess.run(
                    command,
                    cwd=self.working_dir,
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except FileNotFoundError as e:
                raise DistArchiveError(
                    f"Archive command not found: {command[0]}", ErrorCode.DEPENDENCY_ERROR
                ) from e
        finally:
            shutil.rmtree(list_dir, ignore_errors=True)

        if result.returncode != 0:
            raise ArchiveError(result.stderr or result.stdout, result.returncode)

        return self.archive_path
