"""build_vcs_gateway のテスト。"""

from __future__ import annotations

from prpilot.models.config import HostConfig
from prpilot.vcs import GitHubGateway, GitLabGateway, build_vcs_gateway
from tests.unit.vcs.conftest import GITHUB_TARGET, GITLAB_TARGET


class TestBuildVcsGateway:
    """種別とホスト設定からのゲートウェイ選択を検証。"""

    def test_github_default_base(self) -> None:
        gateway = build_vcs_gateway(GITHUB_TARGET, None, "t")
        assert isinstance(gateway, GitHubGateway)
        assert gateway.api_base == "https://api.github.com"

    def test_gitlab_self_managed_default_base(self) -> None:
        gateway = build_vcs_gateway(GITLAB_TARGET, None, None)
        assert isinstance(gateway, GitLabGateway)
        assert gateway.api_base == "https://gitlab.example.com/api/v4"

    def test_configured_api_base(self) -> None:
        host = HostConfig(api_base="https://git.internal/api/v4/")
        gateway = build_vcs_gateway(GITLAB_TARGET, host, "t")
        assert gateway.api_base == "https://git.internal/api/v4"
