"""SummaryComposer — claim コメントと最終レポートの Markdown レンダリング。

出力言語（comment_language）の適用はこのレンダリング段階のみで行い、
見出し・ラベルのみを翻訳する。プロバイダーの本文はそのまま掲載する。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from prpilot.models.config import CommentLanguage
from prpilot.models.review import (
    FinalReport,
    Marker,
    MarkerKind,
    ProviderFailure,
    ProviderOutcome,
    ProviderTimeout,
    TokenUsage,
    UsageTable,
)
from prpilot.models.target import ReviewTarget

NOT_AVAILABLE: Final[str] = "n/a"


@dataclass(frozen=True)
class Labels:
    """言語ごとの見出し・ラベル。"""

    title: str
    target: str
    head_sha: str
    in_progress: str
    reviews: str
    failures: str
    failure_error: str
    failure_timeout: str
    cross: str
    cross_heading: str
    cross_not_enough: str
    cross_none: str
    usage: str
    provider_column: str
    prompt_column: str
    completion_column: str
    total_column: str
    total_row: str
    released: str


LABELS: Final[dict[CommentLanguage, Labels]] = {
    CommentLanguage.EN: Labels(
        title="Multi-Agent Code Review",
        target="Target",
        head_sha="Head SHA",
        in_progress="Review in progress...",
        reviews="Provider Reviews",
        failures="Failed Providers",
        failure_error="error",
        failure_timeout="timed out after {seconds}s",
        cross="Agent-to-Agent Reactions",
        cross_heading="{name} on Other Agents",
        cross_not_enough="Not enough successful agents to run cross-agent reactions.",
        cross_none="No cross-agent reactions were produced.",
        usage="Token Usage (Best Effort)",
        provider_column="Agent",
        prompt_column="Prompt",
        completion_column="Completion",
        total_column="Total",
        total_row="Total",
        released="Review failed: no provider produced a result.",
    ),
    CommentLanguage.KO: Labels(
        title="멀티 에이전트 코드 리뷰",
        target="대상",
        head_sha="Head SHA",
        in_progress="리뷰 진행 중...",
        reviews="에이전트별 리뷰",
        failures="실패한 에이전트",
        failure_error="오류",
        failure_timeout="{seconds}초 후 시간 초과",
        cross="에이전트 간 상호 코멘트",
        cross_heading="{name}의 상호 코멘트",
        cross_not_enough="상호 코멘트를 실행할 만큼 성공한 에이전트가 부족합니다.",
        cross_none="상호 코멘트가 생성되지 않았습니다.",
        usage="토큰 사용량 (추정)",
        provider_column="에이전트",
        prompt_column="프롬프트",
        completion_column="완료",
        total_column="합계",
        total_row="합계",
        released="리뷰 실패: 결과를 생성한 에이전트가 없습니다.",
    ),
}


def _header(labels: Labels, target: ReviewTarget, head_sha: str) -> list[str]:
    return [
        f"# {labels.title}",
        "",
        f"- {labels.target}: {target.url}",
        f"- {labels.head_sha}: `{head_sha}`",
        "",
    ]


def render_claim(
    target: ReviewTarget,
    head_sha: str,
    language: CommentLanguage = CommentLanguage.EN,
) -> str:
    """claim コメント本文を生成する。先頭に claim マーカーを置く。"""
    labels = LABELS[language]
    marker = Marker(kind=MarkerKind.CLAIM, sha=head_sha)
    lines = [marker.render(), "", *_header(labels, target, head_sha), labels.in_progress]
    return "\n".join(lines) + "\n"


def _format_failure(labels: Labels, outcome: ProviderFailure | ProviderTimeout) -> str:
    if isinstance(outcome, ProviderTimeout):
        detail = labels.failure_timeout.format(seconds=f"{outcome.timeout_seconds:g}")
    else:
        message = " ".join(outcome.error_message.split())
        detail = f"{labels.failure_error}: {message}"
    return f"- **{outcome.display_name}**: {detail}"


def render_failure_notes(
    labels: Labels, failures: Sequence[ProviderFailure | ProviderTimeout]
) -> list[str]:
    """失敗プロバイダーの注記行を生成する。"""
    if not failures:
        return []
    lines = [f"## {labels.failures}", ""]
    lines.extend(_format_failure(labels, f) for f in failures)
    lines.append("")
    return lines


def _format_count(value: int | None) -> str:
    return NOT_AVAILABLE if value is None else str(value)


def _usage_cells(usage: TokenUsage | None) -> str:
    if usage is None:
        return f"{NOT_AVAILABLE} | {NOT_AVAILABLE} | {NOT_AVAILABLE}"
    return (
        f"{_format_count(usage.prompt_tokens)} | "
        f"{_format_count(usage.completion_tokens)} | "
        f"{_format_count(usage.total_tokens)}"
    )


def render_usage_table(labels: Labels, usage: UsageTable) -> list[str]:
    """使用量テーブルの Markdown 行を生成する。"""
    lines = [
        f"## {labels.usage}",
        "",
        f"| {labels.provider_column} | {labels.prompt_column} | "
        f"{labels.completion_column} | {labels.total_column} |",
        "|---|---:|---:|---:|",
    ]
    for row in usage.rows:
        lines.append(f"| {row.display_name} | {_usage_cells(row.usage)} |")
    total = usage.total if usage.total.is_available else None
    lines.append(f"| **{labels.total_row}** | {_usage_cells(total)} |")
    lines.append("")
    return lines


def render_final_report(report: FinalReport) -> str:
    """最終レポートの Markdown を生成する。

    構成:
        1. ヘッダー（タイトル・対象・ヘッド sha）
        2. 初回レビュー成功プロバイダーごとの節
        3. 失敗プロバイダーの注記（ある場合）
        4. 相互レビュー節（成功した相互レビューのみ）
        5. 使用量テーブル
        6. final マーカー（フッター）

    Args:
        report: 最終レポート。

    Returns:
        Markdown 文字列。
    """
    labels = LABELS[report.language]
    lines = _header(labels, report.target, report.head_sha)

    lines.extend([f"## {labels.reviews}", ""])
    for success in report.successes:
        lines.extend([f"### {success.display_name}", "", success.text.strip(), ""])

    lines.extend(render_failure_notes(labels, report.failures))

    lines.extend([f"## {labels.cross}", ""])
    cross_successes = report.cross_successes
    if len(report.successes) < 2:
        lines.extend([f"- {labels.cross_not_enough}", ""])
    elif not cross_successes:
        lines.extend([f"- {labels.cross_none}", ""])
    else:
        for reaction in cross_successes:
            lines.extend(
                [
                    "---",
                    "",
                    f"### {labels.cross_heading.format(name=reaction.display_name)}",
                    "",
                    reaction.text.strip(),
                    "",
                ]
            )

    lines.extend(render_usage_table(labels, report.usage))
    lines.append(report.footer_marker.render())
    return "\n".join(lines) + "\n"


def render_release(
    target: ReviewTarget,
    head_sha: str,
    outcomes: Sequence[ProviderOutcome],
    language: CommentLanguage = CommentLanguage.EN,
) -> str:
    """全プロバイダー失敗時にマーカーを外した本文を生成する。"""
    labels = LABELS[language]
    failures = [o for o in outcomes if isinstance(o, (ProviderFailure, ProviderTimeout))]
    lines = _header(labels, target, head_sha)
    lines.extend([labels.released, ""])
    lines.extend(render_failure_notes(labels, failures))
    return "\n".join(lines).rstrip("\n") + "\n"
