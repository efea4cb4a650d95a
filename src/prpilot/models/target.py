"""レビュー対象の定義。"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from prpilot.models._base import PrpilotBaseModel


class TargetKind(StrEnum):
    """レビュー対象の種別。"""

    PULL_REQUEST = "pull_request"
    MERGE_REQUEST = "merge_request"


class ReviewTarget(PrpilotBaseModel):
    """URL から解決されたレビュー対象。構築後は不変。

    Attributes:
        url: 入力された URL（正規化済み）。
        host: ホスト名（ポートを含む場合あり）。
        owner: GitHub のオーナー、または GitLab のグループパス。
        repo: リポジトリ（プロジェクト）名。
        number: PR 番号または MR の iid。
        kind: pull_request / merge_request。
    """

    url: str = Field(min_length=1)
    host: str = Field(min_length=1)
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    number: int = Field(gt=0)
    kind: TargetKind

    @property
    def project_path(self) -> str:
        """owner/repo 形式のパス。"""
        return f"{self.owner}/{self.repo}"
