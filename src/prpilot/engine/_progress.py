"""ProgressReporter — stderr 進捗表示。

TTY 時は Rich Live テーブル、非 TTY 時はプレーンテキストで自動切替する。
進捗表示・ログは stderr に出力し、stdout はレポートと JSON 専用とする。
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from prpilot.models.review import (
    ProviderFailure,
    ProviderOutcome,
    ProviderSuccess,
    ProviderTimeout,
)


# =============================================================================
# ProgressReporter Protocol
# =============================================================================


@runtime_checkable
class ProgressReporter(Protocol):
    """レビュー実行進捗を報告するプロトコル。"""

    def on_status(self, stage: str, message: str) -> None:
        """パイプライン段階の状態を通知する。"""
        ...

    def on_provider_pending(self, provider_name: str, review_pass: str) -> None:
        """プロバイダーを pending 状態として登録する。"""
        ...

    def on_provider_start(self, provider_name: str, review_pass: str) -> None:
        """プロバイダー実行開始を通知する。"""
        ...

    def on_provider_complete(
        self, provider_name: str, review_pass: str, outcome: ProviderOutcome
    ) -> None:
        """プロバイダー実行完了を通知する。"""
        ...

    def start(self) -> None:
        """進捗表示を開始する。"""
        ...

    def stop(self) -> None:
        """進捗表示を停止する。"""
        ...


# =============================================================================
# PlainProgressReporter
# =============================================================================


class PlainProgressReporter:
    """非 TTY 環境向けプレーンテキスト進捗レポーター。"""

    def on_status(self, stage: str, message: str) -> None:
        report_status(stage, message)

    def on_provider_pending(self, provider_name: str, review_pass: str) -> None:
        """プレーンテキストでは pending 表示しない。"""

    def on_provider_start(self, provider_name: str, review_pass: str) -> None:
        report_provider_start(provider_name, review_pass)

    def on_provider_complete(
        self, provider_name: str, review_pass: str, outcome: ProviderOutcome
    ) -> None:
        report_provider_complete(provider_name, review_pass, outcome)

    def start(self) -> None:
        """プレーンテキストでは開始処理なし。"""

    def stop(self) -> None:
        """プレーンテキストでは停止処理なし。"""


# =============================================================================
# ファクトリ関数
# =============================================================================


def create_progress_reporter() -> ProgressReporter:
    """stderr の TTY 状態に基づいて適切な ProgressReporter を生成する。"""
    if sys.stderr.isatty():
        from prpilot.engine._live_progress import RichProgressReporter

        return RichProgressReporter()
    return PlainProgressReporter()


def report_status(stage: str, message: str) -> None:
    """パイプライン段階の状態を stderr に表示する。

    出力フォーマット:
        "[{stage}] {message}"
    """
    print(f"[{stage}] {message}", file=sys.stderr)


def report_provider_start(provider_name: str, review_pass: str) -> None:
    """プロバイダー実行開始を stderr に表示する。

    出力フォーマット:
        "Running provider: {provider_name} ({review_pass})..."
    """
    print(f"Running provider: {provider_name} ({review_pass})...", file=sys.stderr)


def format_outcome(outcome: ProviderOutcome) -> str:
    """プロバイダー結果を 1 行の要約に変換する。"""
    if isinstance(outcome, ProviderSuccess):
        retried = ", retried without stdin" if outcome.attempts > 1 else ""
        return f"completed in {outcome.elapsed_time:.1f}s{retried}"
    if isinstance(outcome, ProviderFailure):
        return f"error ({outcome.error_message})"
    if isinstance(outcome, ProviderTimeout):
        return f"timeout ({outcome.timeout_seconds:g}s)"
    raise TypeError(f"Unknown outcome type: {type(outcome)}")


def report_provider_complete(
    provider_name: str, review_pass: str, outcome: ProviderOutcome
) -> None:
    """プロバイダー実行完了を stderr に表示する。

    出力フォーマット:
        成功: "Provider {name} ({pass}): completed in {N}s"
        エラー: "Provider {name} ({pass}): error ({message})"
        タイムアウト: "Provider {name} ({pass}): timeout ({N}s)"
    """
    print(
        f"Provider {provider_name} ({review_pass}): {format_outcome(outcome)}",
        file=sys.stderr,
    )


def report_warnings(warnings: tuple[str, ...] | list[str]) -> None:
    """警告メッセージを stderr に表示する。"""
    for warning in warnings:
        print(f"Warning: {warning}", file=sys.stderr)
