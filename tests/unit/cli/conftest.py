"""CLI テスト共通フィクスチャ・ヘルパー。"""

from __future__ import annotations

from prpilot.engine import EngineResult, RunOutcome
from prpilot.models.exit_code import ExitCode

PATCH_RUN_REVIEW = "prpilot.cli._app.run_review"
PATCH_RESOLVE_CONFIG = "prpilot.cli._app.resolve_config"
PATCH_VERSION = "prpilot.cli._app.importlib.metadata.version"


def make_engine_result(
    outcome: RunOutcome = RunOutcome.COMPLETED,
    exit_code: ExitCode = ExitCode.SUCCESS,
    markdown: str | None = None,
    skip_reason: str | None = None,
) -> EngineResult:
    """テスト用の最小 EngineResult を生成する。"""
    return EngineResult(
        outcome=outcome,
        exit_code=exit_code,
        markdown=markdown,
        skip_reason=skip_reason,
    )
