"""ProviderPool — プロバイダーの並行実行とリトライ。

各プロバイダーを asyncio.TaskGroup で並行に呼び出し、結果は事前に割り当てた
スロットへ各タスクが 1 回だけ書き込む。1 回の呼び出しは anyio.fail_after で
タイムアウトを適用する。

リトライは 1 回のみ: CLI モードで stdin 経由の入力が拒否された場合に限り、
stdin を使わない経路で再実行する。
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Final

import anyio

from prpilot.engine._ports import ProviderInvoker
from prpilot.engine._progress import ProgressReporter
from prpilot.models.provider import ProviderMode, ProviderSpec
from prpilot.models.review import (
    ProviderFailure,
    ProviderOutcome,
    ProviderResponse,
    ProviderSuccess,
    ProviderTimeout,
)
from prpilot.providers import ProviderError, is_stdin_rejection

logger = logging.getLogger(__name__)

REVIEW_PASS: Final[str] = "review"
CROSS_PASS: Final[str] = "cross"


class AllProvidersFailedError(Exception):
    """初回レビューで成功したプロバイダーが 1 つもない。

    Attributes:
        outcomes: 全プロバイダーの失敗結果。
    """

    def __init__(self, message: str, outcomes: list[ProviderOutcome]) -> None:
        super().__init__(message)
        self.outcomes = outcomes


async def _invoke_once(
    invoker: ProviderInvoker, spec: ProviderSpec, prompt: str
) -> ProviderResponse:
    with anyio.fail_after(spec.timeout_seconds):
        return await invoker.invoke(spec, prompt)


def should_retry_without_stdin(spec: ProviderSpec, error: Exception) -> bool:
    """stdin を使わない経路でのリトライ対象かどうか判定する。"""
    return spec.mode == ProviderMode.CLI and spec.use_stdin and is_stdin_rejection(error)


async def run_provider(
    invoker: ProviderInvoker, spec: ProviderSpec, prompt: str
) -> ProviderOutcome:
    """単一プロバイダーを実行し、ProviderOutcome を返す。

    全ての例外を内部で捕捉し、適切なバリアントに変換する。
    この関数は例外を送出しない（キャンセルを除く）。

    例外ハンドリング:
        - TimeoutError → ProviderTimeout（リトライしない）
        - stdin 拒否（CLI モード、初回のみ） → use_stdin=False で 1 回だけ再実行
        - その他の例外 → ProviderFailure

    Args:
        invoker: プロバイダー呼び出しポート。
        spec: 実行仕様。
        prompt: プロンプト。

    Returns:
        ProviderSuccess / ProviderFailure / ProviderTimeout。
    """
    start_time = time.monotonic()
    current = spec
    attempts = 1
    while True:
        try:
            response = await _invoke_once(invoker, current, prompt)
            break
        except TimeoutError:
            return ProviderTimeout(
                provider_id=spec.provider_id,
                display_name=spec.display_name,
                timeout_seconds=spec.timeout_seconds,
            )
        except Exception as exc:
            if attempts == 1 and should_retry_without_stdin(current, exc):
                logger.info(
                    "Provider '%s' rejected piped stdin; retrying without stdin",
                    spec.provider_id,
                )
                current = spec.model_copy(update={"use_stdin": False})
                attempts = 2
                continue
            logger.warning(
                "Provider '%s' failed with %s: %s",
                spec.provider_id,
                type(exc).__name__,
                exc,
                exc_info=True,
            )
            return ProviderFailure(
                provider_id=spec.provider_id,
                display_name=spec.display_name,
                error_message=str(exc) or type(exc).__name__,
                error_type=type(exc).__name__,
                exit_code=exc.exit_code if isinstance(exc, ProviderError) else None,
                stderr=exc.stderr if isinstance(exc, ProviderError) else None,
                attempts=attempts,
            )

    return ProviderSuccess(
        provider_id=spec.provider_id,
        display_name=spec.display_name,
        text=response.text,
        usage=response.usage,
        elapsed_time=time.monotonic() - start_time,
        attempts=attempts,
    )


async def run_concurrently(
    jobs: Sequence[tuple[ProviderSpec, str]],
    invoker: ProviderInvoker,
    reporter: ProgressReporter,
    review_pass: str,
) -> list[ProviderOutcome]:
    """(ProviderSpec, prompt) の組を並行実行する。

    各タスクは自分のスロットにのみ書き込むため、結果の順序は jobs の順序と一致する。

    Args:
        jobs: 実行する (ProviderSpec, prompt) のシーケンス。
        invoker: プロバイダー呼び出しポート。
        reporter: 進捗レポーター。
        review_pass: パス名（"review" / "cross"）。

    Returns:
        ProviderOutcome のリスト（jobs と同順）。
    """
    slots: list[ProviderOutcome | None] = [None] * len(jobs)

    for spec, _ in jobs:
        reporter.on_provider_pending(spec.display_name, review_pass)

    async def _run_into_slot(index: int, spec: ProviderSpec, prompt: str) -> None:
        reporter.on_provider_start(spec.display_name, review_pass)
        outcome = await run_provider(invoker, spec, prompt)
        reporter.on_provider_complete(spec.display_name, review_pass, outcome)
        slots[index] = outcome

    async with asyncio.TaskGroup() as tg:
        for index, (spec, prompt) in enumerate(jobs):
            tg.create_task(_run_into_slot(index, spec, prompt))

    return [outcome for outcome in slots if outcome is not None]


async def run_provider_pass(
    specs: Sequence[ProviderSpec],
    prompt: str,
    invoker: ProviderInvoker,
    reporter: ProgressReporter,
) -> list[ProviderOutcome]:
    """初回レビューを全プロバイダーで並行実行する。

    個々の失敗はその結果に閉じ、他のタスクを中断しない。

    Raises:
        AllProvidersFailedError: 成功したプロバイダーが 1 つもない場合。
    """
    outcomes = await run_concurrently(
        [(spec, prompt) for spec in specs], invoker, reporter, REVIEW_PASS
    )
    if not any(isinstance(o, ProviderSuccess) for o in outcomes):
        raise AllProvidersFailedError(
            f"All {len(outcomes)} providers failed the review pass", outcomes
        )
    return outcomes
