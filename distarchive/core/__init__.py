"""distarchive Core - Shared constants, errors and validators.

Import specific names from submodules:
    from distarchive.core.constants import ErrorCode, ArchiveFormat
    from distarchive.core.errors import BrokenSymlinkError
    from distarchive.core.validators import validate_relative_path
"""
