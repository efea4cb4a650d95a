"""CrossReviewComposer — プロバイダー間の相互レビュー。

初回レビューに成功したプロバイダーごとに、自身と他プロバイダーの初回結果を
含むプロンプトを構築し、初回と同じ実行・リトライ規則で並行に呼び出す。
ここでの失敗はそのプロバイダーの相互レビュー節を省くだけで、実行全体は失敗させない。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final

from prpilot.engine._pool import CROSS_PASS, run_concurrently
from prpilot.engine._ports import ProviderInvoker
from prpilot.engine._progress import ProgressReporter
from prpilot.engine._prompt import build_cross_prompt
from prpilot.models.provider import ProviderSpec
from prpilot.models.review import ProviderOutcome, ProviderSuccess
from prpilot.models.target import ReviewTarget

MIN_CROSS_PARTICIPANTS: Final[int] = 2
"""相互レビューを実行するのに必要な初回成功プロバイダー数。"""


def build_cross_jobs(
    successes: Sequence[ProviderSuccess],
    specs: Mapping[str, ProviderSpec],
    target: ReviewTarget,
    head_sha: str,
) -> list[tuple[ProviderSpec, str]]:
    """相互レビューの (ProviderSpec, prompt) を構築する。

    成功が MIN_CROSS_PARTICIPANTS 未満の場合は空リストを返す。
    """
    if len(successes) < MIN_CROSS_PARTICIPANTS:
        return []
    jobs: list[tuple[ProviderSpec, str]] = []
    for own in successes:
        peers = [s for s in successes if s.provider_id != own.provider_id]
        prompt = build_cross_prompt(target, head_sha, own, peers)
        jobs.append((specs[own.provider_id], prompt))
    return jobs


async def run_cross_review(
    first_pass: Sequence[ProviderOutcome],
    specs: Mapping[str, ProviderSpec],
    target: ReviewTarget,
    head_sha: str,
    invoker: ProviderInvoker,
    reporter: ProgressReporter,
) -> list[ProviderOutcome]:
    """相互レビューを実行する。

    Args:
        first_pass: 初回レビューの全結果。
        specs: provider_id → ProviderSpec。
        target: レビュー対象。
        head_sha: ヘッドコミット。
        invoker: プロバイダー呼び出しポート。
        reporter: 進捗レポーター。

    Returns:
        初回成功プロバイダーの相互レビュー結果。実行しない場合は空リスト。
    """
    successes = [o for o in first_pass if isinstance(o, ProviderSuccess)]
    jobs = build_cross_jobs(successes, specs, target, head_sha)
    if not jobs:
        return []
    return await run_concurrently(jobs, invoker, reporter, CROSS_PASS)
