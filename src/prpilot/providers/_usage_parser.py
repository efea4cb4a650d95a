"""CLI 出力からのトークン使用量抽出（ベストエフォート）。

CLI ごとに出力形式が異なるため、既知のキーを含む行から数値を拾う。
"""

from __future__ import annotations

import re
from typing import Final

from prpilot.models.review import TokenUsage

_PROMPT_KEYS: Final[tuple[str, ...]] = (
    "prompt_tokens",
    "prompt tokens",
    "input_tokens",
    "input tokens",
)
_COMPLETION_KEYS: Final[tuple[str, ...]] = (
    "completion_tokens",
    "completion tokens",
    "output_tokens",
    "output tokens",
)
_TOTAL_KEYS: Final[tuple[str, ...]] = ("total_tokens", "total tokens", "tokens total")

_NUMBER_RE: Final[re.Pattern[str]] = re.compile(r"\d+")


def _first_number(text: str) -> int | None:
    match = _NUMBER_RE.search(text)
    return int(match.group()) if match else None


def _extract_metric(text: str, keys: tuple[str, ...]) -> int | None:
    """キーを含む最初の行の最初の数値、なければキー直後の最初の数値を返す。"""
    lower = text.lower()
    for line in lower.splitlines():
        for key in keys:
            if key in line:
                value = _first_number(line)
                if value is not None:
                    return value
    for key in keys:
        idx = lower.find(key)
        if idx >= 0:
            value = _first_number(lower[idx + len(key) :])
            if value is not None:
                return value
    return None


def parse_usage(stdout: str, stderr: str) -> TokenUsage:
    """stdout と stderr からトークン使用量を抽出する。

    total が見つからず prompt と completion の両方がある場合は和を total とする。
    何も見つからなければすべて None（取得不能）を返す。

    Args:
        stdout: 標準出力。
        stderr: 標準エラー出力。

    Returns:
        TokenUsage。
    """
    merged = f"{stdout}\n{stderr}"
    prompt = _extract_metric(merged, _PROMPT_KEYS)
    completion = _extract_metric(merged, _COMPLETION_KEYS)
    total = _extract_metric(merged, _TOTAL_KEYS)
    if total is None and prompt is not None and completion is not None:
        total = prompt + completion
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total,
    )
