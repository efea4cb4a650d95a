"""CliApp — Typer アプリケーション定義。

``prpilot <url> [--dry-run] [--force]`` でレビューを実行し、
``prpilot config`` で実効設定を JSON として stdout に出力する。
stdout はレポートと JSON 専用、進捗・エラーは stderr に出力する。
"""

from __future__ import annotations

import asyncio
import importlib.metadata
import os
import sys
from typing import Annotated

import click
import typer
from typer.core import TyperGroup

from prpilot.config import ConfigError, build_inspection, resolve_config
from prpilot.engine import RunOutcome, run_review
from prpilot.models.exit_code import ExitCode

_REVIEW_ARGS_KEY = "_review_args"
_DRY_RUN_FLAG = "--dry-run"
_FORCE_FLAG = "--force"
_TRAILING_FLAGS = frozenset({_DRY_RUN_FLAG, _FORCE_FLAG})


def _split_review_args(args: list[str]) -> tuple[list[str], set[str]]:
    """URL の後ろに置かれたフラグを位置引数から分離する。

    Click の Group は位置引数以降のオプションを解析しないため、
    ``prpilot <url> --dry-run`` の形式はここで受け付ける。
    """
    urls = [a for a in args if a not in _TRAILING_FLAGS]
    flags = {a for a in args if a in _TRAILING_FLAGS}
    return urls, flags


class _ReviewGroup(TyperGroup):
    """Typer Group のサブコマンド解決をオーバーライドし、位置引数との共存を実現する。

    Click の Group はサブコマンド名にマッチしない引数を UsageError にするが、
    prpilot ではサブコマンドでない引数をレビュー対象 URL として扱う。
    このクラスは resolve_command が失敗した場合に callback へ引数を渡す。
    """

    # click.Group.invoke の戻り値型が object であり、オーバーライドのため合わせている
    def invoke(self, ctx: click.Context) -> object:
        if not ctx._protected_args:
            if self.invoke_without_command:
                with ctx:
                    return click.Command.invoke(self, ctx)
            ctx.fail("Missing command.")

        args = [*ctx._protected_args, *ctx.args]
        ctx.args = []
        ctx._protected_args = []

        try:
            cmd_name, cmd, remaining = self.resolve_command(ctx, args)
        except click.UsageError as exc:
            if "No such command" not in str(exc):
                raise
            ctx.ensure_object(dict)
            ctx.obj[_REVIEW_ARGS_KEY] = args
            ctx.invoked_subcommand = None
            with ctx:
                return click.Command.invoke(self, ctx)

        if cmd is None:
            ctx.fail(f"Could not resolve command: {args}")
        with ctx:
            ctx.invoked_subcommand = cmd_name
            click.Command.invoke(self, ctx)
            sub_ctx = cmd.make_context(
                cmd_name,  # type: ignore[arg-type]
                remaining,
                parent=ctx,
            )
            with sub_ctx:
                return sub_ctx.command.invoke(sub_ctx)


app = typer.Typer(
    name="prpilot",
    cls=_ReviewGroup,
    help=(
        "Multi-agent pull/merge request review.\n\n"
        "  prpilot <url>     review a GitHub PR or GitLab MR\n\n"
        "  prpilot config    print the effective configuration as JSON"
    ),
    add_completion=False,
    invoke_without_command=True,
)


def _version_callback(value: bool) -> None:
    """--version 指定時にバージョン番号を出力して終了する。"""
    if value:
        print(importlib.metadata.version("prpilot"))
        raise typer.Exit()


def main() -> None:
    """CLI エントリポイント。pyproject.toml の [project.scripts] から呼び出される。"""
    app()


@app.callback()
def review_callback(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            _DRY_RUN_FLAG, help="Run the review but print the report instead of posting."
        ),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(_FORCE_FLAG, help="Review even if this commit was already reviewed."),
    ] = False,
) -> None:
    """Review a pull request or merge request (default command)."""
    if ctx.invoked_subcommand is not None:
        return

    obj = ctx.ensure_object(dict)
    raw_args: list[str] = obj.get(_REVIEW_ARGS_KEY, [])
    urls, trailing_flags = _split_review_args(raw_args)
    dry_run = dry_run or _DRY_RUN_FLAG in trailing_flags
    force = force or _FORCE_FLAG in trailing_flags

    if len(urls) != 1:
        print(
            "Error: expected exactly one pull request or merge request URL.\n"
            "Usage: prpilot <url> [--dry-run] [--force]",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.INPUT_ERROR)

    result = asyncio.run(run_review(urls[0], dry_run=dry_run, force=force))

    if result.outcome == RunOutcome.DRY_RUN and result.markdown is not None:
        print(result.markdown, end="")
    elif result.outcome == RunOutcome.SKIPPED:
        print(f"Skipped: {result.skip_reason}", file=sys.stderr)

    raise typer.Exit(code=result.exit_code)


@app.command()
def config() -> None:
    """Print the effective configuration and provider resolution as JSON."""
    try:
        loaded = resolve_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise typer.Exit(code=ExitCode.INPUT_ERROR) from None

    for warning in loaded.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    inspection = build_inspection(loaded, os.environ)
    print(inspection.model_dump_json(indent=2))
