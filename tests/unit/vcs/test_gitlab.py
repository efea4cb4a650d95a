"""GitLabGateway のテスト。"""

from __future__ import annotations

import pytest

from prpilot.vcs import GitLabGateway, VcsError, default_gitlab_api_base
from tests.unit.vcs.conftest import GITLAB_TARGET, make_response, make_session

API = "https://gitlab.example.com/api/v4"
MR_URL = f"{API}/projects/group%2Fsub%2Fproj/merge_requests/12"


def _gateway(*responses) -> GitLabGateway:
    return GitLabGateway(
        GITLAB_TARGET, api_base=f"{API}/", token="glpat", session=make_session(*responses)
    )


class TestGitLabGateway:
    """GitLab REST 呼び出しと応答の変換を検証。"""

    def test_default_api_base(self) -> None:
        assert default_gitlab_api_base("gitlab.com") == "https://gitlab.com/api/v4"

    async def test_fetch_head_sha_uses_encoded_project_path(self) -> None:
        gateway = _gateway(make_response(json_data={"sha": "def456"}))
        assert await gateway.fetch_head_sha() == "def456"
        call = gateway._session.request.call_args
        assert call.args == ("GET", MR_URL)
        assert call.kwargs["headers"]["PRIVATE-TOKEN"] == "glpat"

    async def test_head_sha_from_diff_refs(self) -> None:
        gateway = _gateway(
            make_response(json_data={"sha": None, "diff_refs": {"head_sha": "fff"}})
        )
        assert await gateway.fetch_head_sha() == "fff"

    async def test_missing_sha(self) -> None:
        gateway = _gateway(make_response(json_data={}))
        with pytest.raises(VcsError):
            await gateway.fetch_head_sha()

    async def test_fetch_diff_joins_changes(self) -> None:
        gateway = _gateway(
            make_response(
                json_data={"changes": [{"diff": "@@ -1 +1 @@\n-a\n+b"}, {"diff": "@@ x"}]}
            )
        )
        assert await gateway.fetch_diff() == "@@ -1 +1 @@\n-a\n+b\n@@ x"
        assert gateway._session.request.call_args.args[1] == f"{MR_URL}/changes"

    async def test_fetch_diff_adds_file_headers(self) -> None:
        """パス情報があればファイルヘッダーを補う。"""
        gateway = _gateway(
            make_response(
                json_data={
                    "changes": [
                        {"old_path": "a.py", "new_path": "a.py", "diff": "@@ -1 +1 @@\n"},
                        {
                            "old_path": "new.py",
                            "new_path": "new.py",
                            "new_file": True,
                            "diff": "@@ -0,0 +1 @@\n",
                        },
                    ]
                }
            )
        )
        assert await gateway.fetch_diff() == (
            "diff --git a/a.py b/a.py\n--- a/a.py\n+++ b/a.py\n@@ -1 +1 @@\n\n"
            "diff --git a/new.py b/new.py\n--- /dev/null\n+++ b/new.py\n@@ -0,0 +1 @@\n"
        )

    async def test_list_comments_skips_system_notes(self) -> None:
        gateway = _gateway(
            make_response(
                json_data=[
                    {"id": 1, "body": "added 1 commit", "system": True},
                    {"id": 2, "body": "human note", "system": False},
                ]
            )
        )
        comments = await gateway.list_comments()
        assert [c.comment_id for c in comments] == ["2"]
        params = gateway._session.request.call_args.kwargs["params"]
        assert params == {"per_page": 100, "order_by": "created_at", "sort": "asc"}

    async def test_update_uses_put(self) -> None:
        gateway = _gateway(make_response(json_data={"id": 9, "body": "b"}))
        await gateway.upsert_comment("b", "9")
        call = gateway._session.request.call_args
        assert call.args == ("PUT", f"{MR_URL}/notes/9")
        assert call.kwargs["json"] == {"body": "b"}

    async def test_invalid_json_raises(self) -> None:
        gateway = _gateway(make_response(text="<html>"))
        with pytest.raises(VcsError, match="invalid JSON"):
            await gateway.upsert_comment("b")
