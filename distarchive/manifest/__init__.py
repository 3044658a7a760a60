"""Include/exclude manifest construction."""

from .builder import Manifest, ManifestBuilder, get_file_list, reconcile_excluded

__all__ = ["Manifest", "ManifestBuilder", "get_file_list", "reconcile_excluded"]
