#!/usr/bin/env python3
"""Staging copy of the included files.

When the archive must extract to a directory name other than the source
directory's, or the source tree contains symlinks, the included paths are
copied into ``<tmp>/<output dir name>`` and the archive is built from there.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from distarchive.core.constants import ErrorCode
from distarchive.core.errors import DistArchiveError
from distarchive.infrastructure.logger import get_logger
from distarchive.manifest.builder import Manifest


def path_contains_symlink(source_dir: Union[str, Path]) -> bool:
    """Check whether any entry below ``source_dir`` is a symlink.

    Raises:
        NotADirectoryError: If ``source_dir`` is not a directory
    """
    source_dir = os.fspath(source_dir)
    if not os.path.isdir(source_dir):
        raise NotADirectoryError(f"Path `{source_dir}` is not a directory")

    for dirpath, dirnames, filenames in os.walk(source_dir):
        for name in dirnames + filenames:
            if os.path.islink(os.path.join(dirpath, name)):
                return True
    return False


def needs_staging(source_dir: Union[str, Path], output_dir_name: str) -> bool:
    """True when the archive cannot be built from the source directory in place."""
    return os.path.basename(os.fspath(source_dir)) != output_dir_name or path_contains_symlink(
        source_dir
    )


def stage_manifest(
    source_dir: Union[str, Path],
    manifest: Manifest,
    output_dir_name: str,
    prefix: str = "distarchive-",
) -> Path:
    """Copy the manifest's included paths into a fresh temporary directory.

    Sockets, named pipes and device files are left out. The temporary
    directory is removed again when copying fails.

    Args:
        source_dir: Directory the manifest was built from
        manifest: Manifest whose included paths are copied
        output_dir_name: Directory name the archive extracts to
        prefix: Prefix for the temporary directory

    Returns:
        Path of the staged ``<tmp>/<output_dir_name>`` directory

    Raises:
        DistArchiveError: If an included path cannot be copied
    """
    source_dir = os.fspath(source_dir)
    staged = Path(tempfile.mkdtemp(prefix=prefix)) / output_dir_name
    logger = get_logger()
    try:
        staged.mkdir(parents=True)
        _copy_included(source_dir, manifest, staged)
    except OSError as e:
        cleanup_staging(staged)
        error_code = (
            ErrorCode.PERMISSION_DENIED if isinstance(e, PermissionError) else ErrorCode.INTERNAL_ERROR
        )
        raise DistArchiveError(f"Cannot create staged copy: {e}", error_code) from e

    logger.debug("Staged source tree", path=str(staged), entries=len(manifest.included))
    return staged


def _copy_included(source_dir: str, manifest: Manifest, staged: Path) -> None:
    directories = manifest.directories

    for relative_path in manifest.included:
        source_item = source_dir + relative_path
        target = staged / relative_path.lstrip("/")
        if relative_path in directories:
            target.mkdir(parents=True, exist_ok=True)
        elif not os.path.isfile(source_item):
            get_logger().warning("Skipping special file", path=relative_path)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source_item, target)


def cleanup_staging(staged: Union[str, Path]) -> None:
    """Remove the temporary directory created by ``stage_manifest``."""
    shutil.rmtree(Path(staged).parent, ignore_errors=True)
