"""PR/MR URL 解析のテスト。"""

from __future__ import annotations

import pytest

from prpilot.engine import UnsupportedUrlError, parse_review_url
from prpilot.models.target import TargetKind


class TestParseGitHubUrl:
    """GitHub PR URL の解析を検証。"""

    def test_pull_request(self) -> None:
        target = parse_review_url("https://github.com/acme/widget/pull/7")
        assert target.kind == TargetKind.PULL_REQUEST
        assert (target.host, target.owner, target.repo, target.number) == (
            "github.com",
            "acme",
            "widget",
            7,
        )
        assert target.url == "https://github.com/acme/widget/pull/7"

    def test_trailing_segments_accepted(self) -> None:
        target = parse_review_url("https://github.com/acme/widget/pull/7/files")
        assert target.number == 7

    def test_enterprise_host_with_port(self) -> None:
        target = parse_review_url("https://GHE.corp:8443/team/svc/pull/12")
        assert target.host == "ghe.corp:8443"

    def test_surrounding_whitespace_stripped(self) -> None:
        target = parse_review_url("  https://github.com/a/b/pull/1\n")
        assert target.url == "https://github.com/a/b/pull/1"


class TestParseGitLabUrl:
    """GitLab MR URL の解析を検証。"""

    def test_merge_request(self) -> None:
        target = parse_review_url("https://gitlab.com/group/proj/-/merge_requests/3")
        assert target.kind == TargetKind.MERGE_REQUEST
        assert (target.owner, target.repo, target.number) == ("group", "proj", 3)

    def test_nested_groups(self) -> None:
        target = parse_review_url(
            "https://gitlab.example.com/a/b/c/proj/-/merge_requests/42/diffs"
        )
        assert target.owner == "a/b/c"
        assert target.repo == "proj"
        assert target.project_path == "a/b/c/proj"
        assert target.number == 42


class TestUnsupportedUrls:
    """対応しない URL の拒否を検証。"""

    @pytest.mark.parametrize(
        "url",
        [
            "ftp://github.com/a/b/pull/1",
            "github.com/a/b/pull/1",
            "https://github.com/a/b/issues/1",
            "https://github.com/a/b/pull/abc",
            "https://github.com/a/b/pull/0",
            "https://github.com/a/b",
            "https://gitlab.com/proj/-/merge_requests/1",
            "https://gitlab.com/g/p/-/issues/1",
            "https://gitlab.com/g/p/-/merge_requests",
            "https://host:notaport/a/b/pull/1",
            "",
        ],
    )
    def test_rejected(self, url: str) -> None:
        with pytest.raises(UnsupportedUrlError, match="unsupported URL format"):
            parse_review_url(url)

    def test_is_value_error(self) -> None:
        assert issubclass(UnsupportedUrlError, ValueError)
