"""UsageAggregator — トークン使用量の集計。

プロバイダーごとに初回と相互レビューの使用量を合算する。
いずれかのパスの使用量を取得できなかったプロバイダーは n/a とし、
集計値には含めない（0 とは扱わない）。
"""

from __future__ import annotations

from collections.abc import Sequence

from prpilot.models.review import (
    ProviderOutcome,
    ProviderSuccess,
    TokenUsage,
    UsageRow,
    UsageTable,
)


def _combine_passes(passes: Sequence[TokenUsage]) -> TokenUsage | None:
    """1 プロバイダーが成功した全パスの使用量を合算する。

    取得不能なパスが 1 つでもあれば None を返す。
    """
    if not all(p.is_available for p in passes):
        return None
    combined = passes[0]
    for p in passes[1:]:
        combined = combined.add_exact(p)
    return combined if combined.is_available else None


def aggregate_usage(
    first_pass: Sequence[ProviderOutcome],
    cross_pass: Sequence[ProviderOutcome] = (),
) -> UsageTable:
    """使用量テーブルを構築する。

    行は初回レビューに成功したプロバイダーごとに 1 行（初回の順序）。
    集計値は使用量を取得できた行のみから項目ごとに算出する。

    Args:
        first_pass: 初回レビューの全結果。
        cross_pass: 相互レビューの全結果。

    Returns:
        UsageTable。
    """
    cross_usage = {
        o.provider_id: o.usage for o in cross_pass if isinstance(o, ProviderSuccess)
    }
    rows: list[UsageRow] = []
    total = TokenUsage()
    for outcome in first_pass:
        if not isinstance(outcome, ProviderSuccess):
            continue
        passes = [outcome.usage]
        if outcome.provider_id in cross_usage:
            passes.append(cross_usage[outcome.provider_id])
        combined = _combine_passes(passes)
        if combined is not None:
            total = total.add(combined)
        rows.append(
            UsageRow(
                provider_id=outcome.provider_id,
                display_name=outcome.display_name,
                usage=combined,
            )
        )
    return UsageTable(rows=rows, total=total)
