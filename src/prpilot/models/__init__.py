"""prpilot ドメインモデルパッケージ。"""

from prpilot.models._base import PrpilotBaseModel
from prpilot.models.config import (
    DEFAULT_MAX_DIFF_BYTES,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TIMEOUT_SECONDS,
    ApiType,
    CommentLanguage,
    DefaultsConfig,
    HostConfig,
    PrpilotConfig,
    ProviderConfig,
    resolve_api_type,
)
from prpilot.models.exit_code import ExitCode
from prpilot.models.provider import ProviderExclusion, ProviderMode, ProviderSpec
from prpilot.models.review import (
    BOT_NAME,
    FinalReport,
    Marker,
    MarkerKind,
    ProviderFailure,
    ProviderOutcome,
    ProviderResponse,
    ProviderSuccess,
    ProviderTimeout,
    ReviewComment,
    TokenUsage,
    UsageRow,
    UsageTable,
    scan_markers,
)
from prpilot.models.target import ReviewTarget, TargetKind

__all__ = [
    "BOT_NAME",
    "DEFAULT_MAX_DIFF_BYTES",
    "DEFAULT_SYSTEM_PROMPT",
    "DEFAULT_TIMEOUT_SECONDS",
    "ApiType",
    "CommentLanguage",
    "DefaultsConfig",
    "ExitCode",
    "FinalReport",
    "HostConfig",
    "Marker",
    "MarkerKind",
    "PrpilotBaseModel",
    "PrpilotConfig",
    "ProviderConfig",
    "ProviderExclusion",
    "ProviderFailure",
    "ProviderMode",
    "ProviderOutcome",
    "ProviderResponse",
    "ProviderSpec",
    "ProviderSuccess",
    "ProviderTimeout",
    "ReviewComment",
    "ReviewTarget",
    "TargetKind",
    "TokenUsage",
    "UsageRow",
    "UsageTable",
    "resolve_api_type",
    "scan_markers",
]
