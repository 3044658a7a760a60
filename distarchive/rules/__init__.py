"""Ignore-rule evaluation.

- RuleMatcher: any-match-ignores matcher over parsed .distignore rules
- GitIgnoreChecker: last-match-wins gitignore semantics backed by pathspec
"""

from .checker import GitIgnoreChecker
from .patterns import IgnoreRule, RuleMatcher, is_ignored_file, parse_rules, read_rule_lines

__all__ = [
    "GitIgnoreChecker",
    "IgnoreRule",
    "RuleMatcher",
    "is_ignored_file",
    "parse_rules",
    "read_rule_lines",
]
