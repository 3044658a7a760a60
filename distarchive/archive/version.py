#!/usr/bin/env python3
"""Version discovery for the project being archived.

Looks, in order, at:
1. The ``Version:`` header of ``style.css`` (themes)
2. A ``@version`` / ``Version:`` tag in a docblock of a root ``*.php`` file
3. The ``version`` field of ``composer.json``

Alpha versions get the short git commit hash appended when the project is
a git checkout.
"""

import json
import re
import subprocess
from pathlib import Path
from typing import Dict, Optional, Union

from distarchive.core.constants import Limits
from distarchive.infrastructure.logger import get_logger

_HEADER_PATTERN = re.compile(r"^Version:(.*)$", re.MULTILINE | re.IGNORECASE)
_HEADER_TRAILER = re.compile(r"\s*(?:\*/|\?>).*")
_DOCBLOCK = re.compile(r"/\*\*.*?\*/", re.DOTALL)
_TAG_DOCUMENTOR = re.compile(r"@([a-zA-Z0-9\-_\\]+)\s*?(.*)?")
_TAG_PROPERTY = re.compile(r"\s*\*?\s*(.*?):(.*)")


def _read_head(path: Path) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read(Limits.VERSION_SCAN_BYTES)


def parse_doc_block(docblock: str) -> Dict[str, str]:
    """Collect ``@tag value`` and ``Tag: value`` pairs from a docblock.

    Tag names are lower-cased; later lines win.
    """
    tags: Dict[str, str] = {}
    for line in docblock.splitlines():
        match = _TAG_DOCUMENTOR.search(line) or _TAG_PROPERTY.match(line)
        if match is None:
            continue
        name = (match.group(1) or "").strip().lower()
        tags[name] = (match.group(2) or "").strip()
    return tags


def get_version_in_code(code: str) -> Optional[str]:
    """Version tag from the first docblock in ``code`` that has one."""
    for docblock in _DOCBLOCK.findall(code):
        version = parse_doc_block(docblock).get("version")
        if version is not None:
            return version
    return None


def _version_from_stylesheet(source_dir: Path) -> str:
    stylesheet = source_dir / "style.css"
    if not stylesheet.is_file():
        return ""
    contents = _read_head(stylesheet).replace("\r", "\n")
    match = _HEADER_PATTERN.search(contents)
    if match and match.group(1):
        return _HEADER_TRAILER.sub("", match.group(1)).strip()
    return ""


def _version_from_php(source_dir: Path) -> str:
    for php_file in sorted(source_dir.glob("*.php")):
        version = get_version_in_code(_read_head(php_file))
        if version:
            return version.strip()
    return ""


def _version_from_composer(source_dir: Path) -> str:
    composer = source_dir / "composer.json"
    if not composer.is_file():
        return ""
    try:
        data = json.loads(composer.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        get_logger().warning("composer.json is not valid JSON", path=str(composer))
        return ""
    if isinstance(data, dict) and data.get("version"):
        return str(data["version"]).strip()
    return ""


def _git_short_hash(source_dir: Path) -> Optional[str]:
    try:
        result = subprocess.run(
            ["git", "log", "--pretty=format:%h", "-n", "1"],
            cwd=source_dir,
            capture_output=True,
            text=True,
            check=False,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, OSError):
        return None
    maybe_hash = result.stdout.strip()
    if result.returncode == 0 and len(maybe_hash) == Limits.GIT_SHORT_HASH_LENGTH:
        return maybe_hash
    return None


def get_version(source_dir: Union[str, Path]) -> str:
    """Discover the project version.

    Args:
        source_dir: Project directory

    Returns:
        Version string, or "" when none was found
    """
    source_dir = Path(source_dir)

    version = (
        _version_from_stylesheet(source_dir)
        or _version_from_php(source_dir)
        or _version_from_composer(source_dir)
    )

    if version and "-alpha" in version.lower() and (source_dir / ".git").is_dir():
        maybe_hash = _git_short_hash(source_dir)
        if maybe_hash:
            version += "-" + maybe_hash

    return version
