"""GitLab（gitlab.com / セルフマネージド）ゲートウェイ。

MR へのコメントは notes API を使う。プロジェクトはパスを URL エンコードして指定する。
"""

from __future__ import annotations

from urllib.parse import quote

from prpilot.models.review import ReviewComment
from prpilot.vcs._errors import VcsError
from prpilot.vcs._rest import RestVcsGateway


def default_gitlab_api_base(host: str) -> str:
    """ホストの既定 API v4 ベース URL を返す。"""
    return f"https://{host}/api/v4"


def _render_change(change: dict[str, object]) -> str:
    """changes API の 1 ファイル分を unified diff の形式にする。

    diff フィールドはファイルヘッダーを含まないため、パスがあれば補う。
    """
    diff = str(change.get("diff", ""))
    old_path = change.get("old_path")
    new_path = change.get("new_path")
    if not isinstance(old_path, str) or not isinstance(new_path, str):
        return diff
    old_label = "/dev/null" if change.get("new_file") else f"a/{old_path}"
    new_label = "/dev/null" if change.get("deleted_file") else f"b/{new_path}"
    header = (
        f"diff --git a/{old_path} b/{new_path}\n--- {old_label}\n+++ {new_label}\n"
    )
    return header + diff


class GitLabGateway(RestVcsGateway):
    """GitLab REST API v4 によるゲートウェイ。"""

    platform = "gitlab"

    def _auth_headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"PRIVATE-TOKEN": self._token}

    @property
    def _merge_request_url(self) -> str:
        project = quote(self.target.project_path, safe="")
        return f"{self.api_base}/projects/{project}/merge_requests/{self.target.number}"

    @property
    def _notes_url(self) -> str:
        return f"{self._merge_request_url}/notes"

    async def fetch_head_sha(self) -> str:
        resp = await self._request("GET", self._merge_request_url)
        mr = self._parse_json(resp)
        if isinstance(mr, dict):
            sha = mr.get("sha")
            if isinstance(sha, str) and sha:
                return sha
            refs = mr.get("diff_refs")
            head_sha = refs.get("head_sha") if isinstance(refs, dict) else None
            if isinstance(head_sha, str) and head_sha:
                return head_sha
        raise VcsError("gitlab: MR response is missing sha and diff_refs.head_sha")

    async def fetch_diff(self) -> str:
        """changes API の個別 diff を結合して返す。"""
        resp = await self._request("GET", f"{self._merge_request_url}/changes")
        payload = self._parse_json(resp)
        changes = payload.get("changes") if isinstance(payload, dict) else None
        if not isinstance(changes, list):
            raise VcsError("gitlab: MR changes response is missing 'changes'")
        return "\n".join(
            _render_change(change) for change in changes if isinstance(change, dict)
        )

    async def list_comments(self) -> list[ReviewComment]:
        items = await self._get_paginated(
            self._notes_url, {"order_by": "created_at", "sort": "asc"}
        )
        return [
            self._to_comment(item) for item in items if not item.get("system", False)
        ]

    async def create_comment(self, body: str) -> ReviewComment:
        resp = await self._request("POST", self._notes_url, json_body={"body": body})
        return self._to_comment(self._parse_json(resp))

    async def update_comment(self, comment_id: str, body: str) -> ReviewComment:
        resp = await self._request(
            "PUT", f"{self._notes_url}/{comment_id}", json_body={"body": body}
        )
        return self._to_comment(self._parse_json(resp))
