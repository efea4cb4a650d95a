"""VCS ゲートウェイテスト共通ヘルパー。"""

from __future__ import annotations

from unittest.mock import MagicMock

import requests

from prpilot.models.target import ReviewTarget, TargetKind

GITHUB_TARGET = ReviewTarget(
    url="https://github.com/acme/widget/pull/7",
    host="github.com",
    owner="acme",
    repo="widget",
    number=7,
    kind=TargetKind.PULL_REQUEST,
)

GITLAB_TARGET = ReviewTarget(
    url="https://gitlab.example.com/group/sub/proj/-/merge_requests/12",
    host="gitlab.example.com",
    owner="group/sub",
    repo="proj",
    number=12,
    kind=TargetKind.MERGE_REQUEST,
)


def make_response(
    *,
    json_data: object = None,
    text: str = "",
    status_code: int = 200,
    next_url: str | None = None,
    url: str = "https://api.example.com/x",
) -> MagicMock:
    """requests.Response のモックを生成する。"""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.text = text
    resp.url = url
    resp.links = {"next": {"url": next_url}} if next_url else {}
    if json_data is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_data
    return resp


def make_session(*responses: MagicMock) -> MagicMock:
    """順に応答を返す requests.Session のモックを生成する。"""
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = list(responses)
    return session
