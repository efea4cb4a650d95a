"""REST API ベースの VCS ゲートウェイ共通処理。

requests による同期呼び出しを asyncio.to_thread でイベントループ外に逃がす。
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Final

import requests

from prpilot.models.review import ReviewComment
from prpilot.models.target import ReviewTarget
from prpilot.vcs._errors import VcsError

REQUEST_TIMEOUT_SECONDS: Final[int] = 30
USER_AGENT: Final[str] = "prpilot"
_ERROR_BODY_LIMIT: Final[int] = 500
_PER_PAGE: Final[int] = 100
_MAX_PAGES: Final[int] = 50


class RestVcsGateway(ABC):
    """GitHub / GitLab ゲートウェイの基底クラス。

    サブクラスは platform と _auth_headers を定義し、抽象メソッドを実装する。
    """

    platform: str = "vcs"

    def __init__(
        self,
        target: ReviewTarget,
        *,
        api_base: str,
        token: str | None,
        session: requests.Session | None = None,
    ) -> None:
        self.target = target
        self.api_base = api_base.rstrip("/")
        self._token = token
        self._session = session if session is not None else requests.Session()

    def _auth_headers(self) -> dict[str, str]:
        return {}

    def _request_sync(
        self,
        method: str,
        url: str,
        *,
        accept: str | None = None,
        json_body: dict[str, object] | None = None,
        params: dict[str, object] | None = None,
    ) -> requests.Response:
        headers = {"User-Agent": USER_AGENT, **self._auth_headers()}
        if accept is not None:
            headers["Accept"] = accept
        try:
            resp = self._session.request(
                method,
                url,
                headers=headers,
                json=json_body,
                params=params,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise VcsError(f"{self.platform}: {method} {url} failed: {exc}") from exc
        if not resp.ok:
            raise VcsError(
                f"{self.platform}: {method} {url} returned HTTP {resp.status_code}: "
                f"{resp.text[:_ERROR_BODY_LIMIT]}",
                status_code=resp.status_code,
            )
        return resp

    async def _request(
        self,
        method: str,
        url: str,
        *,
        accept: str | None = None,
        json_body: dict[str, object] | None = None,
        params: dict[str, object] | None = None,
    ) -> requests.Response:
        return await asyncio.to_thread(
            self._request_sync,
            method,
            url,
            accept=accept,
            json_body=json_body,
            params=params,
        )

    def _parse_json(self, resp: requests.Response) -> object:
        try:
            return resp.json()
        except ValueError as exc:
            raise VcsError(f"{self.platform}: invalid JSON from {resp.url}") from exc

    async def _get_paginated(
        self, url: str, extra_params: dict[str, object] | None = None
    ) -> list[dict[str, object]]:
        """Link ヘッダーの next を辿って全ページの要素を取得する。

        Raises:
            VcsError: ページ数が上限を超えた場合。一部のコメントだけでは
                マーカー判定を誤るため、途中結果は返さない。
        """
        items: list[dict[str, object]] = []
        next_url: str | None = url
        params: dict[str, object] | None = {"per_page": _PER_PAGE, **(extra_params or {})}
        pages = 0
        while next_url is not None and pages < _MAX_PAGES:
            resp = await self._request("GET", next_url, params=params)
            page = self._parse_json(resp)
            if not isinstance(page, list):
                raise VcsError(
                    f"{self.platform}: expected a JSON array from {next_url}"
                )
            items.extend(item for item in page if isinstance(item, dict))
            next_url = resp.links.get("next", {}).get("url")
            # next の URL はクエリ文字列を含む
            params = None
            pages += 1
        if next_url is not None:
            raise VcsError(
                f"{self.platform}: comment listing exceeded {_MAX_PAGES} pages; "
                "refusing to continue with a partial comment list"
            )
        return items

    def _to_comment(self, item: object) -> ReviewComment:
        if not isinstance(item, dict) or "id" not in item:
            raise VcsError(f"{self.platform}: comment response is missing an id")
        body = item.get("body")
        return ReviewComment(
            comment_id=str(item["id"]),
            body=body if isinstance(body, str) else "",
        )

    @abstractmethod
    async def fetch_head_sha(self) -> str:
        """現在のヘッドコミット sha を取得する。"""

    @abstractmethod
    async def fetch_diff(self) -> str:
        """unified diff を取得する。"""

    @abstractmethod
    async def list_comments(self) -> list[ReviewComment]:
        """既存コメントを投稿順に取得する。"""

    @abstractmethod
    async def create_comment(self, body: str) -> ReviewComment:
        """コメントを新規作成する。"""

    @abstractmethod
    async def update_comment(self, comment_id: str, body: str) -> ReviewComment:
        """既存コメントの本文を置き換える。"""

    async def upsert_comment(
        self, body: str, comment_id: str | None = None
    ) -> ReviewComment:
        """comment_id があれば更新、なければ新規作成する。"""
        if comment_id is None:
            return await self.create_comment(body)
        return await self.update_comment(comment_id, body)
