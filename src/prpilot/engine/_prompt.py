"""プロバイダーに渡すプロンプトの構築。

プロンプトは出力言語の設定に関係なく常に英語で記述する。
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Final

from prpilot.config import ConfigError
from prpilot.models.config import DefaultsConfig
from prpilot.models.review import ProviderSuccess
from prpilot.models.target import ReviewTarget

TRUNCATION_SENTINEL: Final[str] = "\n... (diff truncated)\n"
"""max_diff_bytes を超えた diff の末尾に付与する通知。"""

_REVIEW_GUIDE_HEADING: Final[str] = "\n\nReview guide (must follow):\n"

_CROSS_SECTIONS: Final[str] = (
    "Agreements, Disagreements, Missed Risks, Suggested Resolution"
)


def truncate_diff(diff: str, max_bytes: int) -> tuple[str, bool]:
    """diff を UTF-8 で max_bytes バイト以内に切り詰める。

    超過した場合は max_bytes バイト（マルチバイト文字の途中では切らない）
    までを残し、TRUNCATION_SENTINEL を付与する。

    Args:
        diff: diff テキスト。
        max_bytes: 最大バイト数。

    Returns:
        (切り詰め後の diff, 切り詰めたかどうか) のタプル。
    """
    encoded = diff.encode("utf-8")
    if len(encoded) <= max_bytes:
        return diff, False
    head = encoded[:max_bytes].decode("utf-8", errors="ignore")
    return head + TRUNCATION_SENTINEL, True


def build_system_prompt(defaults: DefaultsConfig, base_dir: Path | None = None) -> str:
    """システムプロンプトにレビューガイドを連結する。

    Args:
        defaults: 実効 defaults 設定。
        base_dir: review_guide_path が相対パスの場合の基準ディレクトリ。

    Returns:
        システムプロンプト。

    Raises:
        ConfigError: レビューガイドファイルを読めない場合。
    """
    prompt = defaults.system_prompt
    if defaults.review_guide_path is None:
        return prompt

    guide_path = Path(defaults.review_guide_path).expanduser()
    if not guide_path.is_absolute() and base_dir is not None:
        guide_path = base_dir / guide_path
    try:
        guide = guide_path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read review guide file '{guide_path}': {exc}") from exc
    if not guide:
        return prompt
    return f"{prompt}{_REVIEW_GUIDE_HEADING}{guide}"


def build_review_prompt(
    system_prompt: str,
    target: ReviewTarget,
    head_sha: str,
    diff: str,
) -> str:
    """初回レビュー用プロンプトを構築する。"""
    return (
        f"System instructions:\n{system_prompt}\n\n"
        f"Target URL: {target.url}\n"
        f"Head SHA: {head_sha}\n\n"
        "Please review this diff and return concise Markdown findings.\n\n"
        f"```diff\n{diff}\n```"
    )


def build_cross_prompt(
    target: ReviewTarget,
    head_sha: str,
    own: ProviderSuccess,
    peers: Sequence[ProviderSuccess],
) -> str:
    """相互レビュー用プロンプトを構築する。

    自身の初回レビュー本文と、他の成功プロバイダーの本文をすべて含める。

    Args:
        target: レビュー対象。
        head_sha: ヘッドコミット。
        own: 対象プロバイダー自身の初回成功結果。
        peers: 他プロバイダーの初回成功結果。

    Returns:
        プロンプト。
    """
    lines = [
        "You are participating in a multi-agent code review.",
        "Analyze other agents' findings and provide your perspective.",
        "",
        f"Target URL: {target.url}",
        f"Head SHA: {head_sha}",
        "",
        f"Your own findings ({own.display_name}):",
        "",
        own.text.strip(),
        "",
        "Other agents' findings:",
        "",
    ]
    for peer in peers:
        lines.append(f"## {peer.display_name}")
        lines.append(peer.text.strip())
        lines.append("")
    lines.append(f"Now write {own.display_name}'s reaction to other agents.")
    lines.append("State clearly where you agree and where you disagree.")
    lines.append(f"Use Markdown sections in this order: {_CROSS_SECTIONS}.")
    return "\n".join(lines) + "\n"
