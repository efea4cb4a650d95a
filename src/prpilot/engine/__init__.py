"""レビュー実行エンジン。

以下のパイプラインで 1 つの PR/MR をレビューする:

1. URL 解析（parse_review_url）
2. 設定解決・プロバイダー解決（resolve_config / resolve_provider_specs）
3. ヘッド sha・diff 取得と切り詰め（truncate_diff）
4. 重複防止の claim（DedupGuard.check_and_claim）
5. 初回レビューの並行実行（run_provider_pass）
6. 相互レビュー（run_cross_review）
7. 使用量集計（aggregate_usage）
8. 最終レポートの書き込み（DedupGuard.finalize）
"""

from prpilot.engine._cross import build_cross_jobs, run_cross_review
from prpilot.engine._dedup import (
    ClaimDecision,
    DedupGuard,
    GuardState,
    MarkerConflict,
    find_marked_comment,
)
from prpilot.engine._engine import (
    EngineResult,
    MissingTokenError,
    NoRunnableProvidersError,
    RunOutcome,
    build_final_report,
    run_review,
)
from prpilot.engine._platform import UnsupportedUrlError, parse_review_url
from prpilot.engine._pool import (
    AllProvidersFailedError,
    run_concurrently,
    run_provider,
    run_provider_pass,
)
from prpilot.engine._ports import ProviderInvoker, VcsFactory, VcsGateway
from prpilot.engine._progress import (
    PlainProgressReporter,
    ProgressReporter,
    create_progress_reporter,
)
from prpilot.engine._prompt import (
    TRUNCATION_SENTINEL,
    build_cross_prompt,
    build_review_prompt,
    build_system_prompt,
    truncate_diff,
)
from prpilot.engine._summary import render_claim, render_final_report, render_release
from prpilot.engine._usage import aggregate_usage

__all__ = [
    "TRUNCATION_SENTINEL",
    "AllProvidersFailedError",
    "ClaimDecision",
    "DedupGuard",
    "EngineResult",
    "GuardState",
    "MarkerConflict",
    "MissingTokenError",
    "NoRunnableProvidersError",
    "PlainProgressReporter",
    "ProgressReporter",
    "ProviderInvoker",
    "RunOutcome",
    "UnsupportedUrlError",
    "VcsFactory",
    "VcsGateway",
    "aggregate_usage",
    "build_cross_jobs",
    "build_cross_prompt",
    "build_final_report",
    "build_review_prompt",
    "build_system_prompt",
    "create_progress_reporter",
    "find_marked_comment",
    "parse_review_url",
    "render_claim",
    "render_final_report",
    "render_release",
    "run_concurrently",
    "run_cross_review",
    "run_provider",
    "run_provider_pass",
    "run_review",
    "truncate_diff",
]
