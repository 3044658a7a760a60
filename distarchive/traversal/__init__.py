"""Source tree traversal filtered by ignore rules."""

from .filter import PathChecker, PathEntry, TraversalFilter, TraversalState

__all__ = ["PathChecker", "PathEntry", "TraversalFilter", "TraversalState"]
