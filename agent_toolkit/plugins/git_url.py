"""
Plugin source URLs — recognizes git sources in plugin specs.

Protocol URLs are accepted as they are.  Shorthand forms (``host/path`` and
scp-like ``user@host:path``) need an explicit ``git:`` prefix so local paths
that happen to contain dots are never mistaken for repositories.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

_PROTOCOLS = ("https://", "http://", "ssh://", "git://", "git+ssh://", "git+https://")
_GIT_PREFIX = "git:"

_SCP_LIKE = re.compile(r"^(?P<user>[\w.-]+@)?(?P<host>[\w.-]+\.[\w.-]+):(?P<path>[^/].*)$")
_HOST_PATH = re.compile(r"^(?P<host>[\w-]+(?:\.[\w-]+)+)/(?P<path>.+)$")


@dataclass(frozen=True)
class GitSource:
    host: str
    path: str
    repo: str
    ref: Optional[str] = None
    type: str = "git"

    @property
    def pinned(self) -> bool:
        return self.ref is not None


def _split_ref(path: str) -> tuple[str, Optional[str]]:
    """Split a trailing ``#ref`` or ``@ref`` off a repository path."""
    if "#" in path:
        path, ref = path.split("#", 1)
        return path, ref or None
    head, sep, tail = path.rpartition("@")
    if sep and head and tail and "/" not in tail:
        return head, tail
    return path, None


def _clean_path(path: str) -> str:
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return path


def _parse_protocol_url(spec: str) -> Optional[GitSource]:
    parts = urlsplit(spec)
    if not parts.hostname:
        return None
    raw_path, ref = _split_ref(parts.path)
    if parts.fragment:
        ref = parts.fragment
    path = _clean_path(raw_path)
    if not path:
        return None
    base = spec.split("#", 1)[0]
    if ref is not None and base.endswith("@" + ref):
        base = base[: -(len(ref) + 1)]
    return GitSource(host=parts.hostname, path=path, repo=base, ref=ref)


def _parse_shorthand(spec: str) -> Optional[GitSource]:
    scp = _SCP_LIKE.match(spec)
    if scp:
        raw_path, ref = _split_ref(scp.group("path"))
        path = _clean_path(raw_path)
        if not path:
            return None
        user = scp.group("user") or ""
        return GitSource(
            host=scp.group("host"),
            path=path,
            repo=f"{user}{scp.group('host')}:{raw_path}",
            ref=ref,
        )

    host_path = _HOST_PATH.match(spec)
    if host_path:
        raw_path, ref = _split_ref(host_path.group("path"))
        path = _clean_path(raw_path)
        if not path:
            return None
        host = host_path.group("host")
        return GitSource(host=host, path=path, repo=f"https://{host}/{raw_path}", ref=ref)
    return None


def parse_git_url(spec: str) -> Optional[GitSource]:
    """Parse a plugin source spec into a :class:`GitSource`.

    Returns None when *spec* is not a git source (e.g. a local path or
    unprefixed shorthand).
    """
    spec = spec.strip()
    if not spec:
        return None
    if spec.startswith(_PROTOCOLS):
        return _parse_protocol_url(spec)
    if spec.startswith(_GIT_PREFIX):
        rest = spec[len(_GIT_PREFIX):]
        if rest.startswith(_PROTOCOLS):
            return _parse_protocol_url(rest)
        return _parse_shorthand(rest)
    return None
