"""Tests for plugin git source parsing."""

import pytest

from agent_toolkit.plugins import parse_git_url


class TestProtocolUrls:
    def test_https(self):
        src = parse_git_url("https://github.com/user/repo")
        assert src.type == "git"
        assert src.host == "github.com"
        assert src.path == "user/repo"
        assert src.repo == "https://github.com/user/repo"
        assert not src.pinned

    def test_ssh(self):
        src = parse_git_url("ssh://git@github.com/user/repo")
        assert src.host == "github.com"
        assert src.path == "user/repo"
        assert src.repo == "ssh://git@github.com/user/repo"
        assert not src.pinned

    def test_git_protocol(self):
        src = parse_git_url("git://github.com/user/repo")
        assert src.host == "github.com"
        assert src.repo == "git://github.com/user/repo"

    def test_dot_git_suffix_stripped_from_path(self):
        src = parse_git_url("https://github.com/user/repo.git")
        assert src.path == "user/repo"

    def test_fragment_ref(self):
        src = parse_git_url("https://github.com/user/repo#main")
        assert src.ref == "main"
        assert src.pinned
        assert src.repo == "https://github.com/user/repo"


class TestShorthand:
    def test_host_path_with_prefix(self):
        src = parse_git_url("git:github.com/user/repo")
        assert src.host == "github.com"
        assert src.path == "user/repo"
        assert src.repo == "https://github.com/user/repo"
        assert not src.pinned

    def test_scp_like_with_prefix_and_ref(self):
        src = parse_git_url("git:git@github.com:user/repo@v1.0.0")
        assert src.host == "github.com"
        assert src.path == "user/repo"
        assert src.repo == "git@github.com:user/repo"
        assert src.ref == "v1.0.0"
        assert src.pinned


class TestRejected:
    @pytest.mark.parametrize("spec", [
        "github.com/user/repo",
        "git@github.com:user/repo",
        "plugins.v2/my-plugin",
        "vendor/github.enterprise/tools",
        "",
        "   ",
    ])
    def test_not_a_git_source(self, spec):
        assert parse_git_url(spec) is None
