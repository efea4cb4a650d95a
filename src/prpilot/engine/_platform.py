"""PlatformResolver — URL からレビュー対象を解決する。

対応する URL 形式:
    GitHub PR:  https://<host>/<owner>/<repo>/pull/<number>
    GitLab MR:  https://<host>/<group>[/<subgroup>...]/<project>/-/merge_requests/<iid>
いずれも末尾に /files などのセグメントが続いてもよい。それ以外は推測しない。
"""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import urlsplit

from prpilot.models.target import ReviewTarget, TargetKind

_NUMBER_RE: Final[re.Pattern[str]] = re.compile(r"[0-9]+")
_PULL_SEGMENT: Final[str] = "pull"
_GITLAB_SEPARATOR: Final[str] = "-"
_MERGE_REQUESTS_SEGMENT: Final[str] = "merge_requests"


class UnsupportedUrlError(ValueError):
    """PR/MR として解釈できない URL。"""


def _parse_number(segment: str) -> int | None:
    if _NUMBER_RE.fullmatch(segment) is None:
        return None
    number = int(segment)
    return number if number > 0 else None


def _parse_github(url: str, host: str, segments: list[str]) -> ReviewTarget | None:
    if len(segments) < 4 or segments[2] != _PULL_SEGMENT:
        return None
    number = _parse_number(segments[3])
    if number is None:
        return None
    return ReviewTarget(
        url=url,
        host=host,
        owner=segments[0],
        repo=segments[1],
        number=number,
        kind=TargetKind.PULL_REQUEST,
    )


def _parse_gitlab(url: str, host: str, segments: list[str]) -> ReviewTarget | None:
    if _GITLAB_SEPARATOR not in segments:
        return None
    sep = segments.index(_GITLAB_SEPARATOR)
    # グループ（名前空間）とプロジェクトの最低 2 セグメントが必要
    if sep < 2 or len(segments) < sep + 3:
        return None
    if segments[sep + 1] != _MERGE_REQUESTS_SEGMENT:
        return None
    number = _parse_number(segments[sep + 2])
    if number is None:
        return None
    return ReviewTarget(
        url=url,
        host=host,
        owner="/".join(segments[: sep - 1]),
        repo=segments[sep - 1],
        number=number,
        kind=TargetKind.MERGE_REQUEST,
    )


def parse_review_url(url: str) -> ReviewTarget:
    """URL をレビュー対象に変換する。

    Args:
        url: PR または MR の URL。

    Returns:
        ReviewTarget。

    Raises:
        UnsupportedUrlError: 対応形式に一致しない場合。
    """
    stripped = url.strip()
    parts = urlsplit(stripped)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise UnsupportedUrlError(f"unsupported URL format: {url}")

    try:
        port = parts.port
    except ValueError as exc:
        raise UnsupportedUrlError(f"unsupported URL format: {url}") from exc
    host = parts.hostname.lower()
    if port is not None:
        host = f"{host}:{port}"
    segments = [s for s in parts.path.split("/") if s]

    target = _parse_github(stripped, host, segments) or _parse_gitlab(
        stripped, host, segments
    )
    if target is None:
        raise UnsupportedUrlError(f"unsupported URL format: {url}")
    return target
