"""
Plugin sources — resolves where extension plugins are fetched from.
"""

from .git_url import GitSource, parse_git_url

__all__ = ["GitSource", "parse_git_url"]
