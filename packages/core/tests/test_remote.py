"""Tests for remote resolution."""

import subprocess
from unittest.mock import MagicMock

import pytest

from issuemirror_core.exceptions import RemoteNotFound, RemoteNotSupported
from issuemirror_core.gh.remote import RemoteCoordinates, parse_remote_url, resolve_remote

HOSTS = {"github.com": "https://api.github.com", "git.example.com": "https://git.example.com/api/v3/"}
GITHUB = RemoteCoordinates(host="github.com", owner="owner", repo="repo", api_url="https://api.github.com")


class TestParseRemoteUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/owner/repo",
            "https://github.com/owner/repo.git",
            "https://user@github.com/owner/repo.git",
            "git@github.com:owner/repo.git",
            "ssh://git@github.com/owner/repo.git",
            "ssh://git@github.com:22/owner/repo",
            "https://GitHub.com/owner/repo/",
        ],
    )
    def test_github_forms(self, url):
        assert parse_remote_url(url, HOSTS) == GITHUB

    def test_enterprise_host(self):
        coords = parse_remote_url("git@git.example.com:team/tool.git", HOSTS)
        assert coords.api_url == "https://git.example.com/api/v3"
        assert coords.slug == "team/tool"

    def test_unknown_host_not_supported(self):
        with pytest.raises(RemoteNotSupported):
            parse_remote_url("https://gitlab.com/owner/repo.git", HOSTS)

    @pytest.mark.parametrize("url", ["https://github.com/owner", "https://github.com/a/b/c", "git@github.com:"])
    def test_missing_coordinates_not_found(self, url):
        with pytest.raises(RemoteNotFound):
            parse_remote_url(url, HOSTS)


class TestResolveRemote:
    def test_slug_resolves_to_github(self, tmp_path):
        assert resolve_remote("owner/repo", tmp_path, HOSTS) == GITHUB

    def test_url_passed_through(self, tmp_path):
        assert resolve_remote("https://github.com/owner/repo", tmp_path, HOSTS) == GITHUB

    def test_git_remote_name(self, tmp_path, mocker):
        run = mocker.patch(
            "issuemirror_core.gh.remote.subprocess.run",
            return_value=MagicMock(returncode=0, stdout="git@github.com:owner/repo.git\n"),
        )

        assert resolve_remote("origin", tmp_path, HOSTS) == GITHUB
        args = run.call_args.args[0]
        assert args[-3:] == ["remote", "get-url", "origin"]

    def test_unknown_remote_name(self, tmp_path, mocker):
        mocker.patch(
            "issuemirror_core.gh.remote.subprocess.run",
            return_value=MagicMock(returncode=2, stdout="", stderr="error: No such remote 'upstream'"),
        )
        with pytest.raises(RemoteNotFound):
            resolve_remote("upstream", tmp_path, HOSTS)

    def test_git_missing(self, tmp_path, mocker):
        mocker.patch("issuemirror_core.gh.remote.subprocess.run", side_effect=FileNotFoundError)
        with pytest.raises(RemoteNotFound):
            resolve_remote("origin", tmp_path, HOSTS)

    def test_git_timeout(self, tmp_path, mocker):
        mocker.patch(
            "issuemirror_core.gh.remote.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="git", timeout=5),
        )
        with pytest.raises(RemoteNotFound):
            resolve_remote("origin", tmp_path, HOSTS)

    def test_no_network_for_unsupported_host(self, tmp_path, mocker):
        run = mocker.patch(
            "issuemirror_core.gh.remote.subprocess.run",
            return_value=MagicMock(returncode=0, stdout="https://gitlab.com/owner/repo.git\n"),
        )
        with pytest.raises(RemoteNotSupported):
            resolve_remote("origin", tmp_path, HOSTS)
        run.assert_called_once()
