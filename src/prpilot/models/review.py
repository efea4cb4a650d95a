"""レビュー実行結果のモデル定義。

プロバイダー結果は status フィールドを判別キーとする判別共用体。
初回レビューと相互レビューの両パスで同じ型を使う。
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Annotated, Final, Literal, Union

from pydantic import Field

from prpilot.models._base import PrpilotBaseModel
from prpilot.models.config import CommentLanguage
from prpilot.models.target import ReviewTarget

BOT_NAME: Final[str] = "prpilot-bot"
"""マーカーに埋め込むボット名。"""


class MarkerKind(StrEnum):
    """マーカー種別。"""

    CLAIM = "claim"
    FINAL = "final"


class Marker(PrpilotBaseModel):
    """コメント本文に埋め込む sha 単位のマーカー。

    ワイヤ形式（大文字小文字を区別）:
        final: ``<!-- prpilot-bot sha=<SHA> -->``
        claim: ``<!-- prpilot-bot claim sha=<SHA> -->``
    """

    kind: MarkerKind
    sha: str = Field(min_length=1, pattern=r"^\S+$")

    def render(self) -> str:
        """ワイヤ形式の文字列に変換する。"""
        if self.kind == MarkerKind.CLAIM:
            return f"<!-- {BOT_NAME} claim sha={self.sha} -->"
        return f"<!-- {BOT_NAME} sha={self.sha} -->"

    def found_in(self, body: str) -> bool:
        """コメント本文にこのマーカーが含まれるかどうか。"""
        return self.render() in body


_MARKER_RE: Final[re.Pattern[str]] = re.compile(
    rf"<!-- {re.escape(BOT_NAME)} (?:(?P<claim>claim) )?sha=(?P<sha>\S+) -->"
)


def scan_markers(body: str) -> list[Marker]:
    """コメント本文からすべてのマーカーを抽出する。"""
    return [
        Marker(
            kind=MarkerKind.CLAIM if match.group("claim") else MarkerKind.FINAL,
            sha=match.group("sha"),
        )
        for match in _MARKER_RE.finditer(body)
    ]


class ReviewComment(PrpilotBaseModel):
    """PR/MR 上の既存コメント（GitLab ではノート）。"""

    comment_id: str = Field(min_length=1)
    body: str


class TokenUsage(PrpilotBaseModel):
    """トークン使用量。取得できなかった値は None。

    Attributes:
        prompt_tokens: 入力トークン数。
        completion_tokens: 出力トークン数。
        total_tokens: 合計トークン数。
    """

    prompt_tokens: int | None = Field(default=None, ge=0)
    completion_tokens: int | None = Field(default=None, ge=0)
    total_tokens: int | None = Field(default=None, ge=0)

    @property
    def is_available(self) -> bool:
        """いずれかの値が取得できているかどうか。"""
        return (
            self.prompt_tokens is not None
            or self.completion_tokens is not None
            or self.total_tokens is not None
        )

    def add(self, other: TokenUsage) -> TokenUsage:
        """項目ごとに加算した新しい TokenUsage を返す。

        片方だけが値を持つ項目はその値を、両方 None の項目は None を保持する。
        """
        return TokenUsage(
            prompt_tokens=_add_optional(self.prompt_tokens, other.prompt_tokens),
            completion_tokens=_add_optional(
                self.completion_tokens, other.completion_tokens
            ),
            total_tokens=_add_optional(self.total_tokens, other.total_tokens),
        )

    def add_exact(self, other: TokenUsage) -> TokenUsage:
        """両方が値を持つ項目のみ加算した新しい TokenUsage を返す。

        同一プロバイダーの複数パスを合算する場合に使う。
        片方でも欠けている項目は合計値が不明なため None とする。
        """
        return TokenUsage(
            prompt_tokens=_add_exact(self.prompt_tokens, other.prompt_tokens),
            completion_tokens=_add_exact(
                self.completion_tokens, other.completion_tokens
            ),
            total_tokens=_add_exact(self.total_tokens, other.total_tokens),
        )


def _add_exact(a: int | None, b: int | None) -> int | None:
    if a is None or b is None:
        return None
    return a + b


def _add_optional(a: int | None, b: int | None) -> int | None:
    if a is None:
        return b
    if b is None:
        return a
    return a + b


class ProviderResponse(PrpilotBaseModel):
    """プロバイダー呼び出し 1 回分の応答。"""

    text: str = Field(min_length=1)
    usage: TokenUsage = Field(default_factory=TokenUsage)


class ProviderSuccess(PrpilotBaseModel):
    """プロバイダー実行の成功結果。判別キー: status="success"。

    Attributes:
        provider_id: プロバイダー ID。
        display_name: 表示名。
        text: レビュー本文（Markdown）。
        usage: トークン使用量。
        elapsed_time: 実行所要時間（秒）。
        attempts: 試行回数（stdin リトライ時は 2）。
    """

    status: Literal["success"] = "success"
    provider_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    text: str = Field(min_length=1)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    elapsed_time: float = Field(ge=0, allow_inf_nan=False)
    attempts: int = Field(default=1, ge=1, le=2)


class ProviderFailure(PrpilotBaseModel):
    """プロバイダー実行のエラー結果。判別キー: status="error"。

    Attributes:
        provider_id: プロバイダー ID。
        display_name: 表示名。
        error_message: エラーメッセージ。
        error_type: 例外クラス名などのエラー種別。
        exit_code: CLI プロセス終了コード（CLI モードのみ）。
        stderr: 標準エラー出力（CLI モードのみ）。
        attempts: 試行回数。
    """

    status: Literal["error"] = "error"
    provider_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    error_message: str = Field(min_length=1)
    error_type: str | None = None
    exit_code: int | None = None
    stderr: str | None = None
    attempts: int = Field(default=1, ge=1, le=2)


class ProviderTimeout(PrpilotBaseModel):
    """プロバイダー実行のタイムアウト結果。判別キー: status="timeout"。"""

    status: Literal["timeout"] = "timeout"
    provider_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    timeout_seconds: float = Field(gt=0, allow_inf_nan=False)


ProviderOutcome = Annotated[
    Union[ProviderSuccess, ProviderFailure, ProviderTimeout],
    Field(discriminator="status"),
]
"""プロバイダー結果の判別共用体。status フィールドの値で型を自動選択する。"""


class UsageRow(PrpilotBaseModel):
    """使用量テーブルの 1 行。usage が取得不能なら None。"""

    provider_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    usage: TokenUsage | None = None


class UsageTable(PrpilotBaseModel):
    """プロバイダー別使用量と集計値。

    集計値は使用量を取得できたプロバイダーのみから算出する。
    """

    rows: list[UsageRow] = Field(default_factory=list)
    total: TokenUsage = Field(default_factory=TokenUsage)


class FinalReport(PrpilotBaseModel):
    """最終レポート。外部に公開される唯一の成果物。

    Attributes:
        target: レビュー対象。
        head_sha: レビューしたヘッドコミット。
        language: 見出しの出力言語。
        first_pass: 初回レビューの全プロバイダー結果。
        cross_pass: 相互レビューの結果（初回成功プロバイダーのみ）。
        usage: 使用量テーブル。
    """

    target: ReviewTarget
    head_sha: str = Field(min_length=1)
    language: CommentLanguage = CommentLanguage.EN
    first_pass: list[ProviderOutcome]
    cross_pass: list[ProviderOutcome] = Field(default_factory=list)
    usage: UsageTable = Field(default_factory=UsageTable)

    @property
    def successes(self) -> list[ProviderSuccess]:
        """初回レビューに成功したプロバイダー結果。"""
        return [r for r in self.first_pass if isinstance(r, ProviderSuccess)]

    @property
    def failures(self) -> list[ProviderFailure | ProviderTimeout]:
        """初回レビューに失敗したプロバイダー結果。"""
        return [r for r in self.first_pass if not isinstance(r, ProviderSuccess)]

    @property
    def cross_successes(self) -> list[ProviderSuccess]:
        """相互レビューに成功したプロバイダー結果。"""
        return [r for r in self.cross_pass if isinstance(r, ProviderSuccess)]

    @property
    def footer_marker(self) -> Marker:
        """レポート末尾に付与する final マーカー。"""
        return Marker(kind=MarkerKind.FINAL, sha=self.head_sha)
