"""DedupGuard — sha 単位のマーカーによる重複レビュー防止。

状態遷移:
    UNCLAIMED → CLAIMED → FINALIZED（終端）
    UNCLAIMED → SKIPPED（終端。final / claim マーカーが既にある場合）
    CLAIMED → RELEASED（終端。全プロバイダー失敗時にマーカーを外す）

コメントスレッドは外部から変更されうるため、書き込み直前に毎回
再読み込みして前回読んだ内容と比較し、不一致なら MarkerConflict を送出する。
dry-run では読み込みと判定のみを行い、書き込みは一切しない。
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum

from prpilot.engine._ports import VcsGateway
from prpilot.models.review import Marker, MarkerKind, ReviewComment

logger = logging.getLogger(__name__)


class MarkerConflict(Exception):
    """読み込みから書き込みまでの間にコメントスレッドが変更された。"""


class GuardState(StrEnum):
    """DedupGuard の状態。"""

    UNCLAIMED = "unclaimed"
    CLAIMED = "claimed"
    FINALIZED = "finalized"
    SKIPPED = "skipped"
    RELEASED = "released"


class ClaimDecision(StrEnum):
    """check_and_claim の判定結果。"""

    PROCEED = "proceed"
    SKIP = "skip"


def find_marked_comment(
    comments: list[ReviewComment], marker: Marker
) -> ReviewComment | None:
    """マーカーを含む最初のコメントを返す。"""
    for comment in comments:
        if marker.found_in(comment.body):
            return comment
    return None


class DedupGuard:
    """単一のレビュー対象・ヘッドコミットに対する claim / final マーカー管理。

    同一インスタンスからの書き込みは asyncio.Lock で直列化される。

    Attributes:
        state: 現在の状態。
        comment_id: claim コメントの ID。dry-run や未 claim 時は既存コメントの ID または None。
        skip_reason: SKIPPED 時の理由。
    """

    def __init__(
        self,
        gateway: VcsGateway,
        head_sha: str,
        *,
        force: bool = False,
        dry_run: bool = False,
    ) -> None:
        self._gateway = gateway
        self._force = force
        self._dry_run = dry_run
        self._lock = asyncio.Lock()
        self.final_marker = Marker(kind=MarkerKind.FINAL, sha=head_sha)
        self.claim_marker = Marker(kind=MarkerKind.CLAIM, sha=head_sha)
        self.state = GuardState.UNCLAIMED
        self.comment_id: str | None = None
        self.skip_reason: str | None = None
        self.writes = 0
        # 最後に読んだ（または書いた）claim コメント
        self._expected: ReviewComment | None = None
        # 判定時点で存在した、自分以外のマーカー付きコメント（ID → 本文）
        self._baseline: dict[str, str] = {}

    async def check_and_claim(self, claim_body: str) -> ClaimDecision:
        """既存マーカーを検査し、必要なら claim コメントを作成・更新する。

        final マーカーまたは claim マーカーがあり force=False なら SKIP。
        それ以外は既存の claim コメント（force 時は final コメントも可）を
        更新するか、新規作成して CLAIMED に遷移する。

        Args:
            claim_body: claim マーカーを含むコメント本文。

        Returns:
            ClaimDecision。

        Raises:
            MarkerConflict: 判定後にコメントスレッドが変更された場合。
            VcsError: VCS との通信に失敗した場合。
        """
        self._require(GuardState.UNCLAIMED)
        comments = await self._gateway.list_comments()
        final_comment = find_marked_comment(comments, self.final_marker)
        claim_comment = find_marked_comment(comments, self.claim_marker)

        if not self._force and (final_comment or claim_comment):
            self.state = GuardState.SKIPPED
            self.skip_reason = (
                "already reviewed" if final_comment is not None else "review in progress"
            )
            logger.info(
                "Skipping review of %s: %s", self.final_marker.sha, self.skip_reason
            )
            return ClaimDecision.SKIP

        chosen = claim_comment or (final_comment if self._force else None)
        self._expected = chosen
        self._baseline = {
            c.comment_id: c.body
            for c in comments
            if self._is_marked(c)
            and (chosen is None or c.comment_id != chosen.comment_id)
        }
        self.comment_id = chosen.comment_id if chosen is not None else None

        if self._dry_run:
            self.state = GuardState.CLAIMED
            return ClaimDecision.PROCEED

        await self._write(claim_body)
        self.state = GuardState.CLAIMED
        return ClaimDecision.PROCEED

    async def finalize(self, report_body: str) -> None:
        """claim コメントを最終レポートで置き換える。

        Args:
            report_body: final マーカーを含む最終レポート本文。

        Raises:
            MarkerConflict: claim 後にコメントが変更・削除された場合。
            VcsError: VCS との通信に失敗した場合。
        """
        self._require(GuardState.CLAIMED)
        if not self._dry_run:
            await self._write(report_body)
        self.state = GuardState.FINALIZED

    async def release(self, body: str) -> None:
        """claim マーカーを外したコメントで置き換え、再実行可能にする。

        Args:
            body: マーカーを含まないコメント本文。

        Raises:
            MarkerConflict: claim 後にコメントが変更・削除された場合。
            VcsError: VCS との通信に失敗した場合。
        """
        self._require(GuardState.CLAIMED)
        if not self._dry_run:
            await self._write(body)
        self.state = GuardState.RELEASED

    def _require(self, state: GuardState) -> None:
        if self.state != state:
            raise RuntimeError(
                f"DedupGuard is in state '{self.state}', expected '{state}'"
            )

    async def _write(self, body: str) -> None:
        async with self._lock:
            await self._verify_unchanged()
            written = await self._gateway.upsert_comment(body, self.comment_id)
            self.writes += 1
            self.comment_id = written.comment_id
            self._expected = written

    def _is_marked(self, comment: ReviewComment) -> bool:
        return self.final_marker.found_in(comment.body) or self.claim_marker.found_in(
            comment.body
        )

    async def _verify_unchanged(self) -> None:
        """最後に読んだ状態からスレッドが変わっていないことを確認する。"""
        comments = await self._gateway.list_comments()
        expected = self._expected

        if expected is not None:
            current = next(
                (c for c in comments if c.comment_id == expected.comment_id), None
            )
            if current is None:
                raise MarkerConflict(
                    f"Comment {expected.comment_id} was deleted by another actor"
                )
            if current.body != expected.body:
                raise MarkerConflict(
                    f"Comment {expected.comment_id} was modified by another actor"
                )

        for comment in comments:
            if expected is not None and comment.comment_id == expected.comment_id:
                continue
            if not self._is_marked(comment):
                continue
            if self._baseline.get(comment.comment_id) != comment.body:
                raise MarkerConflict(
                    f"Comment {comment.comment_id} acquired a marker for commit "
                    f"{self.final_marker.sha} concurrently"
                )
