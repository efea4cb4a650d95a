"""エンジンが依存する外部ポート。

エンジンはこれらのプロトコルのみに依存し、本番アダプター
（prpilot.vcs / prpilot.providers）とテスト用フェイクを差し替え可能にする。
設定ソースのポート ConfigReader は prpilot.config に定義されている。
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from prpilot.models.config import HostConfig
from prpilot.models.provider import ProviderSpec
from prpilot.models.review import ProviderResponse, ReviewComment
from prpilot.models.target import ReviewTarget


@runtime_checkable
class VcsGateway(Protocol):
    """単一のレビュー対象に束縛された VCS ポート。

    すべてのメソッドは失敗時に VcsError を送出する。
    """

    async def fetch_head_sha(self) -> str:
        """現在のヘッドコミット sha を取得する。"""
        ...

    async def fetch_diff(self) -> str:
        """unified diff を取得する。"""
        ...

    async def list_comments(self) -> list[ReviewComment]:
        """既存コメントを投稿順に取得する。"""
        ...

    async def upsert_comment(
        self, body: str, comment_id: str | None = None
    ) -> ReviewComment:
        """comment_id があれば更新、なければ新規作成する。"""
        ...


class VcsFactory(Protocol):
    """レビュー対象からゲートウェイを構築するファクトリ。"""

    def __call__(
        self,
        target: ReviewTarget,
        host_config: HostConfig | None,
        token: str | None,
    ) -> VcsGateway: ...


@runtime_checkable
class ProviderInvoker(Protocol):
    """プロバイダー呼び出しポート。

    失敗時は ProviderError などの例外を送出する。
    """

    async def invoke(self, spec: ProviderSpec, prompt: str) -> ProviderResponse:
        """プロバイダーを 1 回呼び出す。"""
        ...
