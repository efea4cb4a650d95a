"""VCS ホスト（GitHub / GitLab）アダプター。"""

from prpilot.vcs._errors import VcsError
from prpilot.vcs._factory import build_vcs_gateway
from prpilot.vcs._github import GitHubGateway, default_github_api_base
from prpilot.vcs._gitlab import GitLabGateway, default_gitlab_api_base
from prpilot.vcs._rest import RestVcsGateway

__all__ = [
    "GitHubGateway",
    "GitLabGateway",
    "RestVcsGateway",
    "VcsError",
    "build_vcs_gateway",
    "default_github_api_base",
    "default_gitlab_api_base",
]
