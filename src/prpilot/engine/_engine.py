"""ReviewEngine — レビュー実行パイプライン。

URL 解析 → 設定解決 → プロバイダー解決 → 差分取得 → claim →
初回レビュー → 相互レビュー → 使用量集計 → 最終レポート書き込み。

オーケストレーションレベルのエラーは 1 行のメッセージを stderr に出力し、
EngineResult（outcome=failed）として返す。プロバイダー単位の失敗は
最終レポート内の注記として扱い、実行全体は中断しない。
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path

from prpilot.config import (
    ConfigError,
    ConfigReader,
    Which,
    resolve_config,
    resolve_host_token,
    resolve_provider_specs,
)
from prpilot.engine._cross import run_cross_review
from prpilot.engine._dedup import ClaimDecision, DedupGuard, MarkerConflict
from prpilot.engine._platform import UnsupportedUrlError, parse_review_url
from prpilot.engine._pool import AllProvidersFailedError, run_provider_pass
from prpilot.engine._ports import ProviderInvoker, VcsFactory
from prpilot.engine._progress import (
    ProgressReporter,
    create_progress_reporter,
    report_warnings,
)
from prpilot.engine._prompt import (
    build_review_prompt,
    build_system_prompt,
    truncate_diff,
)
from prpilot.engine._summary import (
    render_claim,
    render_final_report,
    render_release,
)
from prpilot.engine._usage import aggregate_usage
from prpilot.models._base import PrpilotBaseModel
from prpilot.models.config import CommentLanguage
from prpilot.models.exit_code import ExitCode
from prpilot.models.provider import ProviderSpec
from prpilot.models.review import FinalReport, ProviderOutcome
from prpilot.models.target import ReviewTarget
from prpilot.providers import DefaultProviderInvoker
from prpilot.vcs import VcsError, build_vcs_gateway

logger = logging.getLogger(__name__)


class NoRunnableProvidersError(Exception):
    """実行可能なプロバイダーが 1 つもない。"""


class MissingTokenError(Exception):
    """書き込みが必要な実行でホストトークンを解決できない。"""


class RunOutcome(StrEnum):
    """レビュー実行の結末。"""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"
    FAILED = "failed"


class EngineResult(PrpilotBaseModel):
    """ReviewEngine の実行結果。

    Attributes:
        outcome: 実行の結末。
        exit_code: 終了コード。
        markdown: 生成した Markdown（最終レポートまたは解放時の本文）。
        report: 最終レポート。レビューを実行しなかった場合は None。
        comment_id: 書き込んだ（または既存の）コメント ID。
        skip_reason: スキップ理由。
        error: 失敗時のエラーメッセージ。
    """

    outcome: RunOutcome
    exit_code: ExitCode
    markdown: str | None = None
    report: FinalReport | None = None
    comment_id: str | None = None
    skip_reason: str | None = None
    error: str | None = None


def build_final_report(
    target: ReviewTarget,
    head_sha: str,
    first_pass: list[ProviderOutcome],
    cross_pass: list[ProviderOutcome],
    language: CommentLanguage = CommentLanguage.EN,
) -> FinalReport:
    """初回・相互レビュー結果から FinalReport を構築する。"""
    return FinalReport(
        target=target,
        head_sha=head_sha,
        language=language,
        first_pass=first_pass,
        cross_pass=cross_pass,
        usage=aggregate_usage(first_pass, cross_pass),
    )


def _failed(exit_code: ExitCode, exc: BaseException) -> EngineResult:
    print(f"Error: {exc}", file=sys.stderr)
    return EngineResult(outcome=RunOutcome.FAILED, exit_code=exit_code, error=str(exc))


def _exit_code_for(exc: Exception) -> ExitCode:
    if isinstance(exc, (UnsupportedUrlError, ConfigError)):
        return ExitCode.INPUT_ERROR
    return ExitCode.EXECUTION_ERROR


async def run_review(
    url: str,
    *,
    dry_run: bool = False,
    force: bool = False,
    config_reader: ConfigReader | None = None,
    vcs_factory: VcsFactory | None = None,
    invoker: ProviderInvoker | None = None,
    environ: Mapping[str, str] | None = None,
    which: Which | None = None,
    reporter: ProgressReporter | None = None,
    cwd: Path | None = None,
) -> EngineResult:
    """1 つの PR/MR に対するマルチエージェントレビューを実行する。

    Args:
        url: PR/MR の URL。
        dry_run: True の場合、外部への書き込みを一切行わない。
        force: True の場合、既存マーカーがあってもレビューを実行する。
        config_reader: 設定ソースの読み込みポート。
        vcs_factory: VCS ゲートウェイのファクトリ。
        invoker: プロバイダー呼び出しポート。
        environ: 環境変数。None の場合は os.environ。
        which: コマンド探索関数。None の場合は shutil.which。
        reporter: 進捗レポーター。None の場合は stderr の TTY 状態で自動選択。
        cwd: プロジェクトローカル設定とレビューガイドの基準ディレクトリ。

    Returns:
        EngineResult。
    """
    try:
        return await _run_review(
            url,
            dry_run=dry_run,
            force=force,
            config_reader=config_reader,
            vcs_factory=vcs_factory or build_vcs_gateway,
            invoker=invoker or DefaultProviderInvoker(),
            environ=environ if environ is not None else os.environ,
            which=which or shutil.which,
            reporter=reporter or create_progress_reporter(),
            cwd=cwd if cwd is not None else Path.cwd(),
        )
    except (
        UnsupportedUrlError,
        ConfigError,
        NoRunnableProvidersError,
        MissingTokenError,
        VcsError,
        MarkerConflict,
    ) as exc:
        return _failed(_exit_code_for(exc), exc)


async def _run_review(
    url: str,
    *,
    dry_run: bool,
    force: bool,
    config_reader: ConfigReader | None,
    vcs_factory: VcsFactory,
    invoker: ProviderInvoker,
    environ: Mapping[str, str],
    which: Which,
    reporter: ProgressReporter,
    cwd: Path,
) -> EngineResult:
    target = parse_review_url(url)
    loaded = resolve_config(reader=config_reader, environ=environ, cwd=cwd)
    report_warnings(loaded.warnings)
    config = loaded.config
    defaults = config.defaults

    resolution = resolve_provider_specs(config, environ, which)
    for exclusion in resolution.exclusions:
        logger.info(
            "Provider '%s' excluded: %s", exclusion.provider_id, exclusion.reason
        )
    if not resolution.specs:
        reasons = ", ".join(f"{e.provider_id} ({e.reason})" for e in resolution.exclusions)
        raise NoRunnableProvidersError(
            f"No runnable providers{': ' + reasons if reasons else ''}"
        )

    # 書き込み前に検出できる入力エラーはここで確定させる
    system_prompt = build_system_prompt(defaults, base_dir=cwd)

    host_config = config.hosts.get(target.host)
    token = resolve_host_token(host_config, environ)
    if token.value is None and not dry_run:
        source = f" (tried {token.source})" if token.source else ""
        raise MissingTokenError(f"No token available for host '{target.host}'{source}")
    token_value = token.value.get_secret_value() if token.value is not None else None

    gateway = vcs_factory(target, host_config, token_value)
    reporter.on_status("fetch", f"Fetching {target.url}")
    head_sha = await gateway.fetch_head_sha()
    diff, truncated = truncate_diff(await gateway.fetch_diff(), defaults.max_diff_bytes)
    if truncated:
        reporter.on_status(
            "fetch", f"Diff truncated to {defaults.max_diff_bytes} bytes"
        )

    language = defaults.comment_language
    guard = DedupGuard(gateway, head_sha, force=force, dry_run=dry_run)
    decision = await guard.check_and_claim(render_claim(target, head_sha, language))
    if decision == ClaimDecision.SKIP:
        reporter.on_status("skip", f"{head_sha}: {guard.skip_reason}")
        return EngineResult(
            outcome=RunOutcome.SKIPPED,
            exit_code=ExitCode.SUCCESS,
            comment_id=guard.comment_id,
            skip_reason=guard.skip_reason,
        )

    specs_by_id: dict[str, ProviderSpec] = {s.provider_id: s for s in resolution.specs}
    prompt = build_review_prompt(system_prompt, target, head_sha, diff)

    try:
        first_pass, cross_pass = await _run_passes(
            resolution.specs, specs_by_id, prompt, target, head_sha, invoker, reporter
        )
    except AllProvidersFailedError as exc:
        body = render_release(target, head_sha, exc.outcomes, language)
        await guard.release(body)
        print(f"Error: {exc}", file=sys.stderr)
        return EngineResult(
            outcome=RunOutcome.FAILED,
            exit_code=ExitCode.EXECUTION_ERROR,
            markdown=body,
            comment_id=guard.comment_id,
            error=str(exc),
        )

    report = build_final_report(target, head_sha, first_pass, cross_pass, language)
    markdown = render_final_report(report)
    await guard.finalize(markdown)

    if dry_run:
        return EngineResult(
            outcome=RunOutcome.DRY_RUN,
            exit_code=ExitCode.SUCCESS,
            markdown=markdown,
            report=report,
            comment_id=guard.comment_id,
        )
    reporter.on_status("done", f"Posted review for {head_sha}")
    return EngineResult(
        outcome=RunOutcome.COMPLETED,
        exit_code=ExitCode.SUCCESS,
        markdown=markdown,
        report=report,
        comment_id=guard.comment_id,
    )


async def _run_passes(
    specs: tuple[ProviderSpec, ...],
    specs_by_id: Mapping[str, ProviderSpec],
    prompt: str,
    target: ReviewTarget,
    head_sha: str,
    invoker: ProviderInvoker,
    reporter: ProgressReporter,
) -> tuple[list[ProviderOutcome], list[ProviderOutcome]]:
    """初回レビューと相互レビューを実行する。進捗表示はこの間のみ有効。"""
    reporter.start()
    try:
        first_pass = await run_provider_pass(specs, prompt, invoker, reporter)
        cross_pass = await run_cross_review(
            first_pass, specs_by_id, target, head_sha, invoker, reporter
        )
    finally:
        reporter.stop()
    return first_pass, cross_pass
