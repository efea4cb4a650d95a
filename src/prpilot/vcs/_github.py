"""GitHub（github.com / GitHub Enterprise）ゲートウェイ。

PR へのコメントは issue comments API を使う。
"""

from __future__ import annotations

from typing import Final

from prpilot.models.review import ReviewComment
from prpilot.vcs._errors import VcsError
from prpilot.vcs._rest import RestVcsGateway

GITHUB_PUBLIC_HOST: Final[str] = "github.com"
_JSON_ACCEPT: Final[str] = "application/vnd.github+json"
_DIFF_ACCEPT: Final[str] = "application/vnd.github.v3.diff"


def default_github_api_base(host: str) -> str:
    """github.com は公開 API、それ以外は Enterprise の既定パスを返す。"""
    if host == GITHUB_PUBLIC_HOST:
        return "https://api.github.com"
    return f"https://{host}/api/v3"


class GitHubGateway(RestVcsGateway):
    """GitHub REST API v3 によるゲートウェイ。"""

    platform = "github"

    def _auth_headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    @property
    def _pull_url(self) -> str:
        t = self.target
        return f"{self.api_base}/repos/{t.owner}/{t.repo}/pulls/{t.number}"

    @property
    def _comments_url(self) -> str:
        t = self.target
        return f"{self.api_base}/repos/{t.owner}/{t.repo}/issues/{t.number}/comments"

    def _comment_url(self, comment_id: str) -> str:
        t = self.target
        return f"{self.api_base}/repos/{t.owner}/{t.repo}/issues/comments/{comment_id}"

    async def fetch_head_sha(self) -> str:
        resp = await self._request("GET", self._pull_url, accept=_JSON_ACCEPT)
        pull = self._parse_json(resp)
        head = pull.get("head") if isinstance(pull, dict) else None
        sha = head.get("sha") if isinstance(head, dict) else None
        if not isinstance(sha, str) or not sha:
            raise VcsError("github: PR response is missing head.sha")
        return sha

    async def fetch_diff(self) -> str:
        resp = await self._request("GET", self._pull_url, accept=_DIFF_ACCEPT)
        return resp.text

    async def list_comments(self) -> list[ReviewComment]:
        items = await self._get_paginated(self._comments_url)
        return [self._to_comment(item) for item in items]

    async def create_comment(self, body: str) -> ReviewComment:
        resp = await self._request(
            "POST", self._comments_url, accept=_JSON_ACCEPT, json_body={"body": body}
        )
        return self._to_comment(self._parse_json(resp))

    async def update_comment(self, comment_id: str, body: str) -> ReviewComment:
        resp = await self._request(
            "PATCH",
            self._comment_url(comment_id),
            accept=_JSON_ACCEPT,
            json_body={"body": body},
        )
        return self._to_comment(self._parse_json(resp))
