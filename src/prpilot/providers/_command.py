"""CLI モードのプロバイダー実行。

設定されたコマンドを子プロセスとして起動し、プロンプトを渡して
標準出力をレビュー本文として受け取る。
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from typing import Final

from prpilot.models.provider import ProviderSpec
from prpilot.models.review import ProviderResponse
from prpilot.providers._errors import ProviderError
from prpilot.providers._usage_parser import parse_usage

PROMPT_PLACEHOLDER: Final[str] = "{prompt}"
"""引数内でプロンプトに置換されるプレースホルダー。"""

STDIN_NOT_TERMINAL: Final[str] = "stdin is not a terminal"
"""stdin 経由の入力を拒否する CLI が出力するエラー文言（小文字）。"""


def build_command_args(
    args: tuple[str, ...], prompt: str, use_stdin: bool
) -> list[str]:
    """コマンド引数を構築する。

    {prompt} を含む引数はプロンプトで置換する。use_stdin=False で
    プレースホルダーがない場合は、プロンプトを最後の引数として追加する。

    Args:
        args: 設定上の引数。
        prompt: プロンプト本文。
        use_stdin: stdin でプロンプトを渡すかどうか。

    Returns:
        実行時の引数リスト。
    """
    built: list[str] = []
    prompt_in_args = False
    for arg in args:
        if PROMPT_PLACEHOLDER in arg:
            prompt_in_args = True
            built.append(arg.replace(PROMPT_PLACEHOLDER, prompt))
        else:
            built.append(arg)
    if not use_stdin and not prompt_in_args:
        built.append(prompt)
    return built


def is_stdin_rejection(error: BaseException) -> bool:
    """エラーが「stdin が端末でない」失敗かどうか判定する。"""
    text = str(error)
    if isinstance(error, ProviderError) and error.stderr:
        text = f"{text}\n{error.stderr}"
    return STDIN_NOT_TERMINAL in text.lower()


async def run_command(spec: ProviderSpec, prompt: str) -> ProviderResponse:
    """CLI コマンドを 1 回実行し、応答を返す。

    タイムアウトは呼び出し側で制御する。子プロセスは新しいセッションで起動し、
    キャンセルされた場合はプロセスグループごと kill して回収してから
    例外を再送出する。

    Args:
        spec: CLI モードの ProviderSpec。
        prompt: プロンプト本文。

    Returns:
        ProviderResponse。stdout が空で stderr がある場合は stderr を本文とする。

    Raises:
        ProviderError: コマンド未検出、非ゼロ終了、出力が空の場合。
    """
    if spec.command is None:
        raise ProviderError(f"Provider '{spec.provider_id}' has no command configured")

    args = build_command_args(spec.args, prompt, spec.use_stdin)
    try:
        proc = await asyncio.create_subprocess_exec(
            spec.command,
            *args,
            stdin=asyncio.subprocess.PIPE if spec.use_stdin else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as exc:
        raise ProviderError(
            f"Failed to start {spec.display_name} command '{spec.command}': {exc}"
        ) from exc

    stdin_data = prompt.encode() if spec.use_stdin else None
    try:
        raw_stdout, raw_stderr = await proc.communicate(input=stdin_data)
    except BaseException:
        await _kill_process_group(proc)
        raise

    stdout = raw_stdout.decode(errors="replace").strip()
    stderr = raw_stderr.decode(errors="replace").strip()

    if proc.returncode != 0:
        raise ProviderError(
            f"{spec.display_name} command failed (exit code {proc.returncode}): "
            f"{stderr or 'no stderr output'}",
            exit_code=proc.returncode,
            stderr=stderr or None,
        )

    text = stdout or stderr
    if not text:
        raise ProviderError(f"{spec.display_name} command returned empty output")

    return ProviderResponse(text=text, usage=parse_usage(stdout, stderr))


async def _kill_process_group(proc: asyncio.subprocess.Process) -> None:
    """子プロセスが起動したプロセスも含めてグループ全体を kill する。"""
    # セッションリーダーの pid がそのままプロセスグループ ID になる
    with contextlib.suppress(ProcessLookupError):
        os.killpg(proc.pid, signal.SIGKILL)
    if proc.returncode is None:
        await proc.wait()
