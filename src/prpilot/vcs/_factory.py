"""レビュー対象に応じた VCS ゲートウェイの生成。"""

from __future__ import annotations

import requests

from prpilot.models.config import HostConfig
from prpilot.models.target import ReviewTarget, TargetKind
from prpilot.vcs._github import GitHubGateway, default_github_api_base
from prpilot.vcs._gitlab import GitLabGateway, default_gitlab_api_base
from prpilot.vcs._rest import RestVcsGateway


def build_vcs_gateway(
    target: ReviewTarget,
    host_config: HostConfig | None,
    token: str | None,
    session: requests.Session | None = None,
) -> RestVcsGateway:
    """ReviewTarget の種別からゲートウェイを構築する。

    api_base はホスト設定があればそれを、なければ種別ごとの既定値を使う。

    Args:
        target: レビュー対象。
        host_config: ホスト設定。
        token: 認証トークン。None の場合は未認証でアクセスする。
        session: requests セッション（テスト用）。

    Returns:
        GitHubGateway または GitLabGateway。
    """
    api_base = host_config.api_base if host_config is not None else None
    if target.kind == TargetKind.PULL_REQUEST:
        return GitHubGateway(
            target,
            api_base=api_base or default_github_api_base(target.host),
            token=token,
            session=session,
        )
    return GitLabGateway(
        target,
        api_base=api_base or default_gitlab_api_base(target.host),
        token=token,
        session=session,
    )
